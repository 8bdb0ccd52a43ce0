"""Waitlist signup, leaderboard and bearer-token checks."""

import secrets
from typing import Any, Dict, List, Optional

import psycopg

from ..config import ServerConfig
from ..db import Database, ProfileStore
from ..errors import Conflict, Forbidden, Unauthorized, UpstreamError
from ..logging_config import get_logger, short_id
from ..models import WaitlistSignup
from ..storage import AuthProvider

logger = get_logger(__name__)

REFERRAL_CODE_BYTES = 4
REFERRAL_CODE_ATTEMPTS = 5


class AccountService:
    """Auth user and profile lifecycle."""

    def __init__(
        self,
        db: Database,
        profiles: ProfileStore,
        auth: AuthProvider,
        server: Optional[ServerConfig] = None,
        leaderboard_limit: int = 100,
    ) -> None:
        self.db = db
        self.profiles = profiles
        self.auth = auth
        self.server = server or ServerConfig()
        self.leaderboard_limit = leaderboard_limit

    def _new_referral_code(self, conn) -> str:
        for _ in range(REFERRAL_CODE_ATTEMPTS):
            code = secrets.token_hex(REFERRAL_CODE_BYTES).upper()
            if not self.profiles.referral_code_exists(conn, code):
                return code
        raise Conflict("Could not allocate a referral code; retry.")

    def signup(self, request: WaitlistSignup) -> str:
        """
        Create the auth user, then the profile row.

        The two live in independent services, so a failed profile insert is
        compensated by deleting the auth user before the error is returned.

        Returns:
            The new user id
        """
        user_id = self.auth.create_user(
            request.email,
            request.password,
            metadata={"nickname": request.nickname},
        )

        try:
            with self.db.transaction() as conn:
                profile = request.to_profile(user_id, self._new_referral_code(conn))
                self.profiles.create(conn, profile)
                if request.referred_by:
                    credited = self.profiles.credit_referral(conn, request.referred_by)
                    if credited is None:
                        logger.warning(f"Unknown referral code {request.referred_by}")
        except Exception as e:
            logger.error(f"Profile insert failed for {short_id(user_id)}: {e}")
            self._compensate(user_id)
            if isinstance(e, psycopg.errors.UniqueViolation):
                raise Conflict("A profile for this account already exists.") from e
            if not isinstance(e, psycopg.Error):
                raise
            raise UpstreamError(f"Profile insert failed: {e}", user_id=user_id) from e

        logger.info(f"Waitlist signup {short_id(user_id)} ({request.nickname})")
        return user_id

    def _compensate(self, user_id: str) -> None:
        try:
            self.auth.delete_user(user_id)
        except UpstreamError as e:
            logger.error(f"Compensating delete failed; auth user {short_id(user_id)} is orphaned: {e}")

    def leaderboard(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Profiles ordered by referral count."""
        with self.db.transaction() as conn:
            return self.profiles.leaderboard(conn, limit or self.leaderboard_limit)

    def authenticate(self, token: Optional[str]) -> Dict[str, Any]:
        """
        Resolve a bearer token to its user.

        Raises:
            Unauthorized: no token
            Forbidden: token rejected by the auth provider
        """
        if not token:
            raise Unauthorized("Access token required.")
        return self.auth.get_user_by_token(token)

    def authorize_admin(self, token: Optional[str]) -> Dict[str, Any]:
        """Resolve a bearer token and check it against the admin allow-list."""
        user = self.authenticate(token)
        allowed = self.server.admin_emails
        if allowed and (user.get("email") or "").lower() not in allowed:
            logger.warning(f"Admin access denied for {short_id(user['id'])}")
            raise Forbidden("Admin access required.")
        return user
