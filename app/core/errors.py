"""Service errors and failure typing."""


class AirscanError(Exception):
    """Base class for leak service failures."""

    error_code = "AIRSCAN_ERROR"


class StorageError(AirscanError):
    """Raised when the document store fails (connection, permission, quota)."""

    error_code = "STORAGE_ERROR"


class DuplicateActiveLeakError(StorageError):
    """Raised when the store rejects a second active leak for one asset."""

    error_code = "DUPLICATE_ACTIVE_LEAK"


class RecordNotFoundError(StorageError):
    error_code = "RECORD_NOT_FOUND"


class InvalidTransitionError(AirscanError):
    """Raised for lifecycle moves the leak state machine does not allow."""

    error_code = "INVALID_TRANSITION"
