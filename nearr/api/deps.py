"""FastAPI dependencies: application context and admin authentication."""

from typing import Any, Dict, Optional

from fastapi import Depends, Header, Request

from ..services import AccountService, AppContext, CohortService


def get_context(request: Request) -> AppContext:
    return request.app.state.context


def get_cohorts(context: AppContext = Depends(get_context)) -> CohortService:
    return context.cohorts


def get_accounts(context: AppContext = Depends(get_context)) -> AccountService:
    return context.accounts


def bearer_token(authorization: Optional[str] = Header(None)) -> Optional[str]:
    """Extract the token from an `Authorization: Bearer ...` header."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def require_admin(
    token: Optional[str] = Depends(bearer_token),
    accounts: AccountService = Depends(get_accounts),
) -> Dict[str, Any]:
    """Reject the request unless the bearer token belongs to an admin."""
    return accounts.authorize_admin(token)
