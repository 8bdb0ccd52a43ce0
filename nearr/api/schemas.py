"""Request bodies for the HTTP API."""

from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


def _alias(name: str) -> AliasChoices:
    # Clients also send the RPC-style parameter names (p_cluster_id, ...)
    return AliasChoices(name, f"p_{name}")


class ClusterUserRequest(BaseModel):
    """A user acting on one cluster."""

    model_config = ConfigDict(populate_by_name=True)

    cluster_id: int = Field(..., ge=1, validation_alias=_alias("cluster_id"))
    user_id: str = Field(..., min_length=1, validation_alias=_alias("user_id"))


class JoinRequest(ClusterUserRequest):
    display_profession: bool = Field(False, validation_alias=_alias("display_profession"))


class ResetRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    cluster_id: int = Field(..., ge=1, validation_alias=_alias("cluster_id"))
    cohort_id: Optional[str] = Field(None, validation_alias=_alias("cohort_id"))


class ClusterCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    max_members: Optional[int] = Field(None, ge=1)
    category: Optional[str] = Field(None)
    description: Optional[str] = Field(None)


class ClusterUpdate(BaseModel):
    """Partial update; only fields present in the body are applied."""

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    max_members: Optional[int] = Field(None, ge=1)
    category: Optional[str] = Field(None)
    description: Optional[str] = Field(None)


class TokenSignIn(BaseModel):
    access_token: Optional[str] = Field(None, validation_alias=AliasChoices("access_token", "token"))
