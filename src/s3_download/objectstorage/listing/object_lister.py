"""Paginated listing of object keys under an S3 prefix."""

import time
from dataclasses import dataclass, field
from typing import Callable, Iterator, Optional

from botocore.exceptions import BotoCoreError, ClientError

from s3_download.core import get_logger, settings
from s3_download.core.exceptions import (
    ErrorKind,
    RetriesExhaustedError,
    StorageOperationError,
)
from s3_download.objectstorage.clients import S3ClientManager
from s3_download.objectstorage.keys import DELIMITER, normalize_key
from s3_download.objectstorage.results import (
    HANDLED_ERRORS,
    OperationResult,
    failure_from_error,
)
from s3_download.objectstorage.retry import (
    RetryPolicy,
    check_response,
    classify_error,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class ListingPage:
    """One page of a ``list_objects_v2`` response."""

    keys: list[str] = field(default_factory=list)
    next_token: Optional[str] = None
    is_truncated: bool = False


class S3ObjectLister:
    """Lists object keys in the session's bucket.

    Pages are fetched on demand and stitched into a single lazy sequence, so
    listing arbitrarily large prefixes never buffers the full result.
    """

    def __init__(
        self,
        client_manager: S3ClientManager,
        retry_policy: Optional[RetryPolicy] = None,
        page_size: Optional[int] = None,
        retry_delay: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.client_manager = client_manager
        self.retry_policy = retry_policy or RetryPolicy(sleep=sleep)
        self.page_size = page_size or settings.list_page_size
        self.retry_delay = (
            settings.list_retry_delay_seconds if retry_delay is None else retry_delay
        )
        self.sleep = sleep

    def fetch_page(
        self,
        folder: Optional[str] = None,
        recursive: bool = True,
        continuation_token: Optional[str] = None,
    ) -> ListingPage:
        """Fetch a single listing page.

        Args:
            folder: Key prefix to list under
            recursive: When False only immediate children are returned
            continuation_token: Token from the previous truncated page

        Returns:
            ListingPage with the object keys of this page
        """
        kwargs = {
            "Bucket": self.client_manager.bucket_name,
            "MaxKeys": self.page_size,
        }
        prefix = normalize_key(folder)
        if prefix:
            kwargs["Prefix"] = prefix
        if not recursive:
            kwargs["Delimiter"] = DELIMITER
        if continuation_token:
            kwargs["ContinuationToken"] = continuation_token

        response = check_response(
            self.client_manager.client.list_objects_v2(**kwargs), "list_objects_v2"
        )

        return ListingPage(
            keys=[obj["Key"] for obj in response.get("Contents", [])],
            next_token=response.get("NextContinuationToken"),
            is_truncated=bool(response.get("IsTruncated")),
        )

    def iter_keys(
        self,
        folder: Optional[str] = None,
        recursive: bool = True,
        raise_on_error: bool = False,
    ) -> Iterator[str]:
        """Lazily yield every key under a folder prefix.

        A failing page is retried under the retry policy; the failure counter
        is reset after every successful page. Once the policy gives up the
        error is raised when ``raise_on_error`` is set, otherwise the sequence
        ends early with the keys already produced.

        Args:
            folder: Key prefix to list under (None lists the whole bucket)
            recursive: Include keys at every depth below the prefix
            raise_on_error: Raise instead of silently truncating the listing

        Yields:
            Object keys in the order S3 returns them
        """
        logger.debug(
            "Listing S3 objects",
            bucket=self.client_manager.bucket_name,
            folder=folder,
            recursive=recursive,
        )

        token: Optional[str] = None
        failures = 0
        pages = 0
        while True:
            try:
                page = self.fetch_page(folder, recursive, token)
            except (ClientError, BotoCoreError, StorageOperationError) as e:
                failures += 1
                if self.retry_policy.should_retry(e, failures):
                    self.sleep(self.retry_delay)
                    continue
                error_msg = (
                    f"Listing '{folder or ''}' stopped after {pages} page(s): {e}"
                )
                if raise_on_error:
                    logger.error(error_msg, error=str(e))
                    if classify_error(e) in (ErrorKind.PERMANENT, None):
                        raise
                    raise RetriesExhaustedError(error_msg, attempts=failures) from e
                logger.warning(
                    "Listing truncated by error", folder=folder, error=str(e)
                )
                return

            pages += 1
            failures = 0
            yield from page.keys

            if not page.is_truncated:
                break
            token = page.next_token

        logger.debug("S3 listing completed", folder=folder, pages=pages)

    def list_keys(
        self, folder: Optional[str] = None, recursive: bool = True
    ) -> OperationResult[list[str]]:
        """Materialize a listing into a typed result."""
        try:
            keys = list(self.iter_keys(folder, recursive, raise_on_error=True))
            logger.info(
                "S3 objects listed",
                bucket=self.client_manager.bucket_name,
                folder=folder,
                object_count=len(keys),
            )
            return OperationResult.success(keys, key=folder)
        except HANDLED_ERRORS as e:
            return failure_from_error("list objects under", e, folder)
