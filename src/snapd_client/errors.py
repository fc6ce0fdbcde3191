"""Error type raised by snapd-client operations."""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

FALLBACK_MESSAGE = "something went wrong"


class ErrorCategory(str, Enum):
    """Where a failure originated."""

    TRANSPORT = "transport"
    DAEMON = "daemon"
    VALIDATION = "validation"


class SnapdError(Exception):
    """Failure reported by the daemon or detected by the client.

    ``category`` tells callers which side is at fault: ``daemon`` errors carry
    the daemon's own ``message`` and ``kind`` (e.g. ``login-required``), while
    ``transport`` and ``validation`` errors are raised locally.

    Socket-level failures (``httpx.ConnectError``, ``OSError``) and JSON decode
    errors are not wrapped and reach the caller as-is.
    """

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory,
        kind: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.category = category
        self.kind = kind
        self.status_code = status_code

    @classmethod
    def from_envelope(cls, body: Any, status_code: Optional[int] = None) -> "SnapdError":
        """Build a daemon error from a decoded error envelope."""
        result = body.get("result") if isinstance(body, dict) else None
        if not isinstance(result, dict):
            result = {}
        return cls(
            result.get("message") or FALLBACK_MESSAGE,
            category=ErrorCategory.DAEMON,
            kind=result.get("kind"),
            status_code=status_code,
        )

    @classmethod
    def validation(cls, message: str) -> "SnapdError":
        return cls(message, category=ErrorCategory.VALIDATION)

    @classmethod
    def malformed_response(cls) -> "SnapdError":
        return cls.validation("malformed response")

    @property
    def is_daemon_error(self) -> bool:
        return self.category is ErrorCategory.DAEMON

    def __repr__(self) -> str:
        return (
            f"SnapdError(message={self.message!r}, category={self.category.value!r}, "
            f"kind={self.kind!r}, status_code={self.status_code!r})"
        )


__all__ = ["ErrorCategory", "SnapdError", "FALLBACK_MESSAGE"]
