"""Error types shared by the services and the HTTP layer."""

from typing import Any, Dict, Optional


class NearrError(Exception):
    """Base error carrying a user-facing message and an HTTP status."""

    status_code: int = 500
    public_message: Optional[str] = None

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context

    def to_payload(self) -> Dict[str, Any]:
        """Render the JSON error envelope."""
        return {"success": False, "message": self.public_message or self.message}


class ValidationError(NearrError):
    """Missing or malformed request fields."""

    status_code = 400


class Unauthorized(NearrError):
    """Missing credentials."""

    status_code = 401


class Forbidden(NearrError):
    """Invalid credentials or an action locked by cohort state."""

    status_code = 403


class NotFound(NearrError):
    """Unknown cluster, cohort, user or file."""

    status_code = 404


class Conflict(NearrError):
    """The request conflicts with the current cohort state."""

    status_code = 409


class AlreadyMember(Conflict):
    """User already holds a membership in the cluster."""


class ClusterFull(Conflict):
    """Active cohort has no free slots or its exchange is already published."""


class UpstreamError(NearrError):
    """Database, storage or auth provider failure.

    The message is kept for logs only; clients get a generic text.
    """

    status_code = 500
    public_message = "Upstream service error."
