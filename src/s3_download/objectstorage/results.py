"""Typed results returned by the object storage façades.

Every public operation returns either an :class:`OperationResult` carrying the
value or an explicit :class:`ErrorKind`, or a :class:`BatchResult` itemizing
which keys succeeded and why the others failed. Callers that prefer
exceptions call ``unwrap()``.
"""

from dataclasses import dataclass, field
from typing import Generic, Optional, TypeVar

from botocore.exceptions import BotoCoreError, ClientError
from pydantic import ValidationError as PydanticValidationError

from s3_download.core import get_logger
from s3_download.core.exceptions import (
    ErrorKind,
    S3DownloadError,
    StorageOperationError,
)
from s3_download.objectstorage.retry import classify_error

logger = get_logger(__name__)

T = TypeVar("T")

# Errors converted into failed results; anything else is a bug and propagates
HANDLED_ERRORS = (
    S3DownloadError,
    ClientError,
    BotoCoreError,
    OSError,
    PydanticValidationError,
)


@dataclass(frozen=True)
class OperationResult(Generic[T]):
    """Outcome of a single storage operation."""

    value: Optional[T] = None
    error_kind: Optional[ErrorKind] = None
    error_message: Optional[str] = None
    key: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error_kind is None

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def success(cls, value: Optional[T] = None, key: Optional[str] = None):
        return cls(value=value, key=key)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str, key: Optional[str] = None):
        return cls(error_kind=kind, error_message=message, key=key)

    @classmethod
    def from_exception(cls, error: StorageOperationError):
        return cls.failure(error.kind, str(error), key=error.key)

    def unwrap(self) -> Optional[T]:
        """Return the value, raising StorageOperationError on failure."""
        if self.error_kind is not None:
            raise StorageOperationError(
                self.error_message or self.error_kind.value,
                kind=self.error_kind,
                key=self.key,
            )
        return self.value


@dataclass
class BatchResult:
    """Itemized outcome of a folder-level operation.

    Attributes:
        succeeded: Keys processed successfully, in processing order
        failed: Mapping of key to failure reason
        stopped_early: True when processing halted at the first failure
    """

    succeeded: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    stopped_early: bool = False

    @property
    def ok(self) -> bool:
        return not self.failed

    def __bool__(self) -> bool:
        return self.ok

    def record(self, key: str, result: OperationResult) -> None:
        if result.ok:
            self.succeeded.append(key)
        else:
            self.failed[key] = result.error_message or str(result.error_kind)

    def unwrap(self) -> list[str]:
        """Return succeeded keys, raising on any failed item."""
        if self.failed:
            summary = ", ".join(f"{k}: {v}" for k, v in self.failed.items())
            raise StorageOperationError(
                f"{len(self.failed)} item(s) failed: {summary}",
                kind=ErrorKind.PARTIAL_BATCH,
            )
        return self.succeeded


def failure_from_error(
    operation: str, error: Exception, key: Optional[str] = None
) -> OperationResult:
    """Log an error and convert it to a failed OperationResult."""
    if isinstance(error, StorageOperationError):
        kind = error.kind
    elif isinstance(error, (S3DownloadError, PydanticValidationError)):
        kind = ErrorKind.INVALID
    elif isinstance(error, OSError):
        kind = ErrorKind.LOCAL
    else:
        kind = classify_error(error) or ErrorKind.PERMANENT

    error_msg = f"Failed to {operation} '{key}': {error}"
    logger.error(error_msg, operation=operation, key=key, error_kind=kind.value)
    return OperationResult.failure(kind, error_msg, key=key)
