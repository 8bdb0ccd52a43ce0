"""Auth provider adapter (user creation and token verification)."""

from typing import Any, Dict, Optional

from supabase import Client

from ..errors import Conflict, Forbidden, UpstreamError
from ..logging_config import get_logger, short_id

logger = get_logger(__name__)


def _user_dict(user: Any) -> Dict[str, Any]:
    return {
        "id": str(user.id),
        "email": getattr(user, "email", None),
        "user_metadata": getattr(user, "user_metadata", None) or {},
    }


class AuthProvider:
    """Thin wrapper over the hosted auth admin API."""

    def __init__(self, client: Client) -> None:
        self.client = client

    def create_user(self, email: str, password: str, metadata: Optional[Dict[str, Any]] = None) -> str:
        """
        Create a confirmed auth user.

        Returns:
            The new user id
        """
        try:
            response = self.client.auth.admin.create_user(
                {
                    "email": email,
                    "password": password,
                    "email_confirm": True,
                    "user_metadata": metadata or {},
                }
            )
        except Exception as e:
            message = str(e).lower()
            if "already" in message or "registered" in message or "exists" in message:
                raise Conflict("An account with this email already exists.") from e
            raise UpstreamError(f"Auth user creation failed: {e}") from e

        user_id = str(response.user.id)
        logger.info(f"Created auth user {short_id(user_id)}")
        return user_id

    def delete_user(self, user_id: str) -> None:
        """Delete an auth user."""
        try:
            self.client.auth.admin.delete_user(user_id)
        except Exception as e:
            raise UpstreamError(f"Auth user deletion failed: {e}", user_id=user_id) from e
        logger.info(f"Deleted auth user {short_id(user_id)}")

    def get_user_by_token(self, token: str) -> Dict[str, Any]:
        """Verify an access token and return the user it belongs to."""
        try:
            response = self.client.auth.get_user(token)
        except Exception as e:
            logger.warning(f"Token validation failed: {e}")
            raise Forbidden("Invalid or expired token.") from e

        if response is None or response.user is None:
            raise Forbidden("Invalid or expired token.")
        return _user_dict(response.user)

    def find_user_by_email(self, email: str, per_page: int = 200) -> Optional[Dict[str, Any]]:
        """Look up an auth user by e-mail (admin listing)."""
        target = email.strip().lower()
        page = 1
        while True:
            try:
                users = self.client.auth.admin.list_users(page=page, per_page=per_page)
            except Exception as e:
                raise UpstreamError(f"Auth user listing failed: {e}") from e
            for user in users:
                if (getattr(user, "email", None) or "").lower() == target:
                    return _user_dict(user)
            if len(users) < per_page:
                return None
            page += 1
