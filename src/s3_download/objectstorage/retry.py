"""Bounded retry policy for S3 requests.

Failures are classified from the botocore error response:

    - 400, 403, 404 and 409 are permanent and never retried
    - ``SlowDown`` and 503 are throttling: wait a fixed delay, then retry
    - anything else reported by botocore is transient and retried at once

At most ``retry_limit`` retries are made (three attempts with the default
settings). There is no jitter and no exponential backoff.
"""

import time
from typing import Callable, Optional, TypeVar

from botocore.exceptions import BotoCoreError, ClientError

from s3_download.core import get_logger, settings
from s3_download.core.exceptions import (
    ErrorKind,
    RetriesExhaustedError,
    StorageOperationError,
)

logger = get_logger(__name__)

T = TypeVar("T")

PERMANENT_STATUS_CODES = frozenset({400, 403, 404, 409})
THROTTLING_ERROR_CODES = frozenset({"SlowDown"})
SERVICE_UNAVAILABLE = 503


def error_status(error: ClientError) -> Optional[int]:
    """Return the HTTP status code of a botocore ClientError, if present."""
    return error.response.get("ResponseMetadata", {}).get("HTTPStatusCode")


def error_code(error: ClientError) -> Optional[str]:
    """Return the S3 error code (e.g. ``NoSuchKey``) of a ClientError."""
    return error.response.get("Error", {}).get("Code")


def classify_error(error: Exception) -> Optional[ErrorKind]:
    """Classify a storage error.

    Returns:
        The ErrorKind, or None when the exception is not a storage error
    """
    if isinstance(error, ClientError):
        status = error_status(error)
        if status in PERMANENT_STATUS_CODES:
            return ErrorKind.PERMANENT
        if error_code(error) in THROTTLING_ERROR_CODES or status == SERVICE_UNAVAILABLE:
            return ErrorKind.THROTTLING
        return ErrorKind.TRANSIENT
    if isinstance(error, BotoCoreError):
        return ErrorKind.TRANSIENT
    return None


def is_success_status(response: dict) -> bool:
    """Check a boto3 response for a 2xx status code."""
    status = response.get("ResponseMetadata", {}).get("HTTPStatusCode", 200)
    return 200 <= status < 300


def check_response(response: dict, operation: str, key: Optional[str] = None) -> dict:
    """Raise StorageOperationError when a response carries a non-2xx status."""
    if not is_success_status(response):
        status = response["ResponseMetadata"]["HTTPStatusCode"]
        raise StorageOperationError(
            f"{operation} returned status {status}",
            kind=ErrorKind.TRANSIENT,
            key=key,
        )
    return response


class RetryPolicy:
    """Runs a callable with the bounded retry policy.

    The policy keeps no state between calls, so a single instance can be
    shared by every operation of a session.
    """

    def __init__(
        self,
        retry_limit: Optional[int] = None,
        throttle_delay: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.retry_limit = settings.retry_limit if retry_limit is None else retry_limit
        if throttle_delay is None:
            throttle_delay = settings.throttle_delay_seconds
        self.throttle_delay = throttle_delay
        self.sleep = sleep

    @property
    def max_attempts(self) -> int:
        return self.retry_limit + 1

    def should_retry(self, error: Exception, failures: int) -> bool:
        """Decide whether another attempt is allowed after ``failures`` failures.

        Waits the throttle delay before returning True for throttling errors.
        """
        kind = classify_error(error)
        if kind is None or kind == ErrorKind.PERMANENT:
            return False
        if failures > self.retry_limit:
            return False
        if kind == ErrorKind.THROTTLING:
            self.sleep(self.throttle_delay)
        return True

    def call(
        self, operation: str, func: Callable[[], T], key: Optional[str] = None
    ) -> T:
        """Call ``func`` until it succeeds or the policy gives up.

        Permanent and non-storage errors are re-raised unchanged. When the
        retry ceiling is exceeded the last error is wrapped in
        RetriesExhaustedError.
        """
        failures = 0
        while True:
            try:
                return func()
            except (ClientError, BotoCoreError) as e:
                failures += 1
                if classify_error(e) == ErrorKind.PERMANENT:
                    logger.warning(
                        "Permanent S3 error, not retrying",
                        operation=operation,
                        key=key,
                        error=str(e),
                    )
                    raise
                if not self.should_retry(e, failures):
                    error_msg = (
                        f"{operation} failed after {failures} attempt(s): {e}"
                    )
                    logger.error(error_msg, operation=operation, key=key)
                    raise RetriesExhaustedError(
                        error_msg, attempts=failures, key=key
                    ) from e
                logger.info(
                    "Retrying S3 request",
                    operation=operation,
                    key=key,
                    attempt=failures + 1,
                    error=str(e),
                )
