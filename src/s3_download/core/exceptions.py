"""Exception hierarchy for s3-download."""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Classification of a failed storage call."""

    PERMANENT = "permanent"
    THROTTLING = "throttling"
    TRANSIENT = "transient"
    EXHAUSTED = "exhausted"
    PARTIAL_BATCH = "partial_batch"
    LOCAL = "local"
    INVALID = "invalid"


class S3DownloadError(Exception):
    """Base exception for all s3-download errors."""

    pass


class ValidationError(S3DownloadError):
    """Raised when validation fails."""

    pass


class StorageOperationError(S3DownloadError):
    """Raised when a storage operation fails.

    Attributes:
        kind: Classification of the failure
        key: Object key the operation was working on, if any
    """

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.PERMANENT,
        key: Optional[str] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.key = key


class RetriesExhaustedError(StorageOperationError):
    """Raised when a retryable call keeps failing past the retry ceiling."""

    def __init__(self, message: str, attempts: int, key: Optional[str] = None):
        super().__init__(message, kind=ErrorKind.EXHAUSTED, key=key)
        self.attempts = attempts


class SessionClosedError(S3DownloadError):
    """Raised when a released client session is used again."""

    pass
