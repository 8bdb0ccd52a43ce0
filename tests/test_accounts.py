"""Tests for waitlist signup, leaderboard and token checks."""

import psycopg
import pytest
from pydantic import ValidationError as PydanticValidationError

from nearr.errors import Conflict, Forbidden, Unauthorized, UpstreamError
from nearr.models import WaitlistSignup

from .conftest import ADMIN_EMAIL


def signup_request(**overrides) -> WaitlistSignup:
    data = {
        "email": "Ann@Example.com",
        "password": "hunter22",
        "nickname": " Ann ",
        "whatsapp": "+91 98765-43210",
        "country": "India",
        "friend_reasons": "Hiking, Coffee",
    }
    data.update(overrides)
    return WaitlistSignup(**data)


def test_signup_creates_user_and_profile(accounts, auth, db):
    user_id = accounts.signup(signup_request())

    assert auth.find_user_by_email("ann@example.com")["id"] == user_id
    profile = db.state.profiles[user_id]
    assert profile["nickname"] == "Ann"
    assert profile["whatsapp_number"] == "+919876543210"
    assert profile["friend_reasons"] == ["Hiking", "Coffee"]
    assert profile["referral_code"]


def test_signup_rolls_back_auth_user_when_profile_insert_fails(accounts, auth, profiles, db):
    profiles.fail_with = psycopg.OperationalError("connection lost")

    with pytest.raises(UpstreamError):
        accounts.signup(signup_request())

    assert auth.find_user_by_email("ann@example.com") is None
    assert db.state.profiles == {}


def test_signup_rolls_back_auth_user_on_unexpected_error(accounts, auth, profiles, db):
    profiles.fail_with = KeyError("user_id")

    with pytest.raises(KeyError):
        accounts.signup(signup_request())

    assert auth.find_user_by_email("ann@example.com") is None
    assert db.state.profiles == {}


def test_duplicate_email(accounts):
    accounts.signup(signup_request())
    with pytest.raises(Conflict):
        accounts.signup(signup_request(nickname="Other"))


def test_referral_is_credited(accounts, db):
    inviter = accounts.signup(signup_request())
    code = db.state.profiles[inviter]["referral_code"]

    accounts.signup(signup_request(email="bo@example.com", nickname="Bo", referred_by=code))

    assert db.state.profiles[inviter]["referrals"] == 1
    assert accounts.leaderboard()[0]["user_id"] == inviter


@pytest.mark.parametrize(
    "overrides",
    [
        {"email": "not-an-email"},
        {"password": "123"},
        {"nickname": "   "},
        {"whatsapp": "call me"},
    ],
)
def test_signup_validation(overrides):
    with pytest.raises(PydanticValidationError):
        signup_request(**overrides)


def test_authenticate(accounts, auth):
    token = auth.issue_token("someone@example.com")

    assert accounts.authenticate(token)["email"] == "someone@example.com"
    with pytest.raises(Unauthorized):
        accounts.authenticate(None)
    with pytest.raises(Forbidden):
        accounts.authenticate("bogus")


def test_admin_allow_list(accounts, auth):
    assert accounts.authorize_admin(auth.issue_token(ADMIN_EMAIL))["email"] == ADMIN_EMAIL
    with pytest.raises(Forbidden):
        accounts.authorize_admin(auth.issue_token("someone@example.com"))
