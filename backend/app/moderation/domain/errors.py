"""Error taxonomy for moderation workflows.

Each error carries the HTTP status and the user-facing message rendered into
the ``{"error": ...}`` response body.
"""

from __future__ import annotations

from fastapi import status


class ModerationError(Exception):
    """Base class for moderation failures."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    detail: str = "Moderation request failed"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.detail)
        if detail:
            self.detail = detail


class Unauthorized(ModerationError):
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Unauthorized"


class Forbidden(ModerationError):
    """Caller is not a moderator, or targets themselves."""

    status_code = status.HTTP_403_FORBIDDEN
    detail = "Forbidden"


class NotFound(ModerationError):
    status_code = status.HTTP_404_NOT_FOUND
    detail = "Not found"


class InvalidArgument(ModerationError):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Invalid request"


class RateLimited(ModerationError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    detail = "Too many requests"


class Internal(ModerationError):
    """Underlying store operation failed."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail = "Internal error"


class SetupRequired(Internal):
    """Backing tables are missing: a deployment problem, not a data condition."""

    detail = "Moderation storage is not set up"
