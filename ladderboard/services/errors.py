"""
ladderboard.services.errors — Sync Error Taxonomy
===================================================

Every failure the sync pipeline knows how to classify is a :class:`SyncError`
carrying an HTTP-style ``status`` and an optional ``retry_after`` hint in
seconds.  Anything else reaching the retry engine is an unexpected error.

=======================  ======  ==========================================
Class                    Status  Retry engine behaviour
=======================  ======  ==========================================
MemberNotFound           404     fatal
CooldownActive           429     skip (never slept through)
UpstreamThrottled        429     retry after ``retry_after`` or fallback
UpstreamUnavailable      502-4   retry with exponential backoff
UpstreamRejected         other   fatal
PersistenceConflict      409     fatal
=======================  ======  ==========================================
"""

from __future__ import annotations

RETRYABLE_STATUSES = frozenset({429, 502, 503, 504})


class SyncError(Exception):
    """Base class for classified sync failures."""

    def __init__(
        self,
        message: str,
        status: int,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.retry_after = retry_after

    @property
    def retryable(self) -> bool:
        return self.status in RETRYABLE_STATUSES

    def __repr__(self) -> str:
        return f"{type(self).__name__}(status={self.status}, message={self.message!r})"


class MemberNotFound(SyncError):
    def __init__(self, member_id: int) -> None:
        super().__init__(f"Member {member_id} not found", 404)
        self.member_id = member_id

    @property
    def retryable(self) -> bool:
        return False


class CooldownActive(SyncError):
    """The member synced successfully too recently — local throttle."""

    def __init__(self, elapsed_seconds: float, remaining_seconds: int) -> None:
        super().__init__(
            f"Already synced {elapsed_seconds / 60:.2f}m ago; "
            f"retry in {remaining_seconds}s",
            429,
            retry_after=remaining_seconds,
        )

    @property
    def retryable(self) -> bool:
        return False


class PersistenceConflict(SyncError):
    """A write that must touch one row touched none."""

    def __init__(self, message: str) -> None:
        super().__init__(message, 409)

    @property
    def retryable(self) -> bool:
        return False


# ---------------------------------------------------------------------------
# Upstream (Riot API) errors
# ---------------------------------------------------------------------------
class RiotApiError(SyncError):
    """Non-2xx response from the Riot API."""

    @classmethod
    def from_status(
        cls,
        status: int,
        message: str,
        retry_after: float | None = None,
    ) -> RiotApiError:
        if status == 429:
            return UpstreamThrottled(message, status, retry_after)
        if status in (502, 503, 504):
            return UpstreamUnavailable(message, status, retry_after)
        return UpstreamRejected(message, status, retry_after)


class UpstreamThrottled(RiotApiError):
    pass


class UpstreamUnavailable(RiotApiError):
    pass


class UpstreamRejected(RiotApiError):
    @property
    def retryable(self) -> bool:
        return False
