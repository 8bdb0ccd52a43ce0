"""Waitlist signup, leaderboard and token sign-in."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ...models import WaitlistSignup
from ...services import AccountService
from ..deps import bearer_token, get_accounts
from ..schemas import TokenSignIn

router = APIRouter(prefix="/api", tags=["accounts"])


@router.post("/waitlist", status_code=201)
def waitlist_signup(body: WaitlistSignup, accounts: AccountService = Depends(get_accounts)):
    user_id = accounts.signup(body)
    return {"success": True, "message": "Signed up.", "user_id": user_id}


@router.get("/secure-data")
def leaderboard(
    limit: Optional[int] = Query(None, ge=1, le=1000),
    accounts: AccountService = Depends(get_accounts),
):
    return {"success": True, "data": accounts.leaderboard(limit)}


@router.post("/auth/token-sign-in")
def token_sign_in(
    body: Optional[TokenSignIn] = None,
    header_token: Optional[str] = Depends(bearer_token),
    accounts: AccountService = Depends(get_accounts),
):
    token = (body.access_token if body else None) or header_token
    user = accounts.authenticate(token)
    return {"success": True, "user": {"id": user["id"], "email": user.get("email")}}
