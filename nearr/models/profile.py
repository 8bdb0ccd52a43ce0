"""User profile model (owned by the signup flow, read by cohorts)."""

import re
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator

from .base import DBModel

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PHONE_PATTERN = re.compile(r"^\+?\d{7,15}$")


class UserProfile(DBModel):
    """Profile row created at waitlist signup."""

    user_id: str = Field(..., description="Auth user id")
    email: Optional[str] = Field(None)
    full_name: Optional[str] = Field(None)
    nickname: str = Field(..., description="Public nickname")
    whatsapp_number: Optional[str] = Field(None, description="Contact number used in the exchange")
    age: Optional[int] = Field(None, ge=0, le=150)
    gender: Optional[str] = Field(None)
    country: Optional[str] = Field(None)
    state: Optional[str] = Field(None)
    city: Optional[str] = Field(None)
    profession: Optional[str] = Field(None)
    display_profession: bool = Field(False)
    hobbies: List[str] = Field(default_factory=list)
    services: List[str] = Field(default_factory=list)
    friend_reasons: List[str] = Field(default_factory=list)
    referral_code: Optional[str] = Field(None)
    referrals: int = Field(0, ge=0)


class WaitlistSignup(BaseModel):
    """Waitlist signup request: auth credentials plus the initial profile."""

    email: str = Field(..., description="Login e-mail")
    password: str = Field(..., min_length=6, description="Login password")
    nickname: str = Field(..., min_length=1, max_length=50)
    whatsapp_number: str = Field(
        ...,
        validation_alias=AliasChoices("whatsapp_number", "whatsapp", "whatsappNumber"),
    )
    full_name: Optional[str] = Field(None, validation_alias=AliasChoices("full_name", "fullName", "name"))
    age: Optional[int] = Field(None, ge=13, le=120)
    gender: Optional[str] = Field(None)
    country: Optional[str] = Field(None)
    state: Optional[str] = Field(None)
    city: Optional[str] = Field(None)
    profession: Optional[str] = Field(None)
    display_profession: bool = Field(False)
    hobbies: List[str] = Field(default_factory=list)
    services: List[str] = Field(default_factory=list)
    friend_reasons: List[str] = Field(default_factory=list)
    referred_by: Optional[str] = Field(
        None,
        description="Referral code of the inviting user",
        validation_alias=AliasChoices("referred_by", "ref_code", "referral_code"),
    )

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        """Normalize and sanity-check the e-mail."""
        v = v.strip().lower()
        if not EMAIL_PATTERN.match(v):
            raise ValueError("Invalid e-mail address")
        return v

    @field_validator("nickname")
    @classmethod
    def strip_nickname(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Nickname is required")
        return v

    @field_validator("whatsapp_number")
    @classmethod
    def validate_whatsapp(cls, v: str) -> str:
        """Keep a leading + and digits only."""
        v = re.sub(r"[\s\-()]", "", v)
        if not PHONE_PATTERN.match(v):
            raise ValueError("Invalid WhatsApp number")
        return v

    @field_validator("hobbies", "services", "friend_reasons", mode="before")
    @classmethod
    def split_lists(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    def to_profile(self, user_id: str, referral_code: str) -> UserProfile:
        """Build the profile row for a freshly created auth user."""
        return UserProfile(
            user_id=user_id,
            referral_code=referral_code,
            **self.model_dump(exclude={"password", "referred_by"}),
        )
