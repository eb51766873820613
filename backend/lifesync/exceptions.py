"""Error taxonomy shared by services, connectors and routes.

Every error carries the HTTP status it maps to; ``main.py`` turns any
``LifeSyncError`` escaping a route into ``{"error": message}`` with that status.
"""

from typing import Optional


class LifeSyncError(Exception):
    """Base class for all expected application errors."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_response(self) -> dict:
        return {"error": self.message}


class ConfigError(LifeSyncError):
    """Deployment configuration is missing or invalid (e.g. encryption key)."""


class DecryptionError(LifeSyncError):
    """Stored ciphertext cannot be read with the current key."""


class AuthenticationError(LifeSyncError):
    """External service rejected the API key."""

    status_code = 401


class ExternalServiceError(LifeSyncError):
    """Any other upstream failure: network, 5xx, rate limit, validation."""

    status_code = 502

    def __init__(self, message: str, upstream_status: Optional[int] = None):
        super().__init__(message)
        self.upstream_status = upstream_status


class NotFoundError(LifeSyncError):
    """Resource does not exist or does not belong to the caller."""

    status_code = 404


class WorkspaceAccessError(LifeSyncError):
    """Workspace is not among the ones the API key can access."""

    status_code = 403


class InactiveConnectionError(LifeSyncError):
    status_code = 400


class SyncInProgressError(LifeSyncError):
    """Another sync run currently holds the connection."""

    status_code = 409


class ReconciliationError(LifeSyncError):
    """A single external entry could not be written locally."""

    def __init__(self, message: str, external_id: Optional[str] = None):
        super().__init__(message)
        self.external_id = external_id


class FrozenSnapshotError(LifeSyncError):
    status_code = 403


class SnapshotExistsError(LifeSyncError):
    status_code = 409

    def __init__(self, message: str, snapshot_id=None):
        super().__init__(message)
        self.snapshot_id = snapshot_id

    def to_response(self) -> dict:
        return {"error": self.message, "snapshotId": str(self.snapshot_id) if self.snapshot_id else None}


class MappingExistsError(LifeSyncError):
    status_code = 409


class InvalidTimeRangeError(LifeSyncError):
    """End of an interval is not after its start."""

    status_code = 400


class AccessDeniedError(LifeSyncError):
    """Resource exists but belongs to another user."""

    status_code = 403
