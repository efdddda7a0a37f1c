"""Exception hierarchy for larder.

Every error raised by the repository, archive, reconciliation and sync
layers inherits from LarderError. Backend exceptions are wrapped at the
store boundary with ``raise ... from``.
"""

from collections.abc import Mapping


class LarderError(Exception):
    """Base exception for all larder errors."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        self.message = message
        self.cause = cause
        super().__init__(message)


class StorageUnavailableError(LarderError):
    """Raised when the device-local key-value store fails.

    Fatal to the current operation and always surfaced to the caller.
    """


class UnreachableError(LarderError):
    """Raised when the remote store of record cannot be reached.

    Absorbed at the sync engine boundary; offline is a normal state.
    """


class RemoteDataError(UnreachableError):
    """Raised when the remote store returns a record that cannot be decoded.

    Degrades like an unreachable remote: the pull or download stops and
    nothing local is overwritten.
    """


class ArchiveNotFoundError(LarderError):
    """Raised when restoring a tenant that has no archive on this device."""

    def __init__(self, tenant_id: str) -> None:
        super().__init__(f"No archived repository found for tenant: {tenant_id}")
        self.tenant_id = tenant_id


class ConflictUnresolvedError(LarderError):
    """Raised when two records cannot be compared for conflict resolution."""


class SyncError(LarderError):
    """Raised when a full sync's record counts do not match the manifest.

    Blocks the "mark as synced" step only; pushed and pulled data stays.
    """

    def __init__(
        self,
        message: str,
        expected: Mapping[str, int] | None = None,
        actual: Mapping[str, int] | None = None,
    ) -> None:
        super().__init__(message)
        self.expected = dict(expected or {})
        self.actual = dict(actual or {})
