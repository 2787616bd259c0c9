"""Object-level S3 operations: read, download, upload, copy, move and delete.

Each public method returns an OperationResult (or a BatchResult for folder
operations) instead of raising, so a failing call never leaves stale error
state behind on the session. Use ``.unwrap()`` to get exception semantics.
"""

import os
import re
import shutil
from typing import IO, Any, Callable, Iterator, Optional

from s3_download.core import get_logger, settings
from s3_download.core.exceptions import ErrorKind, StorageOperationError
from s3_download.objectstorage.clients import S3ClientManager
from s3_download.objectstorage.keys import (
    folder_prefix,
    is_folder_marker,
    join_key,
    key_basename,
    normalize_key,
    replace_base_folder,
)
from s3_download.objectstorage.listing import S3ObjectLister
from s3_download.objectstorage.results import (
    HANDLED_ERRORS,
    BatchResult,
    OperationResult,
    failure_from_error,
)
from s3_download.objectstorage.retry import RetryPolicy, check_response

logger = get_logger(__name__)

STANDARD = "STANDARD"
REDUCED_REDUNDANCY = "REDUCED_REDUNDANCY"

_COPY_BUFFER_SIZE = 1 << 20
_PARTIAL_SUFFIX = ".part"


def wildcard_to_regex(pattern: str) -> re.Pattern:
    """Translate a ``*``/``?`` wildcard into a case-insensitive regex."""
    expression = re.escape(pattern).replace(r"\*", ".*").replace(r"\?", ".")
    return re.compile(expression, re.IGNORECASE | re.DOTALL)


class S3ObjectOperations:
    """Object operations bound to the session's bucket."""

    def __init__(
        self,
        client_manager: S3ClientManager,
        lister: Optional[S3ObjectLister] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self.client_manager = client_manager
        self.retry_policy = retry_policy or RetryPolicy()
        self.lister = lister or S3ObjectLister(
            client_manager, retry_policy=self.retry_policy
        )

    @property
    def bucket(self) -> str:
        return self.client_manager.bucket_name

    def _retry(self, operation: str, func: Callable[[], dict], key: str) -> dict:
        response = self.retry_policy.call(operation, func, key=key)
        return check_response(response, operation, key)

    # Read operations

    def _get_object(self, key: str) -> dict:
        response = self.client_manager.client.get_object(Bucket=self.bucket, Key=key)
        return check_response(response, "get_object", key)

    def read_stream(self, key: str) -> OperationResult[Any]:
        """Open a streaming read of an object.

        Returns:
            Result holding the botocore StreamingBody; the caller closes it
        """
        key = normalize_key(key)
        try:
            response = self._get_object(key)
            return OperationResult.success(response["Body"], key=key)
        except HANDLED_ERRORS as e:
            return failure_from_error("read", e, key)

    def read_text(
        self, key: str, encoding: Optional[str] = None
    ) -> OperationResult[str]:
        """Read a whole object and decode it as text."""
        encoding = encoding or settings.default_encoding
        key = normalize_key(key)
        try:
            body = self._get_object(key)["Body"]
            try:
                return OperationResult.success(body.read().decode(encoding), key=key)
            finally:
                body.close()
        except HANDLED_ERRORS as e:
            return failure_from_error("read", e, key)

    def read_lines(
        self, key: str, encoding: Optional[str] = None
    ) -> OperationResult[Iterator[str]]:
        """Open an object and return a lazy iterator over its decoded lines.

        The object is opened immediately so that a missing key is reported in
        the result; lines are read and decoded only as they are consumed.
        """
        encoding = encoding or settings.default_encoding
        key = normalize_key(key)
        try:
            body = self._get_object(key)["Body"]
        except HANDLED_ERRORS as e:
            return failure_from_error("read", e, key)

        def lines() -> Iterator[str]:
            try:
                for line in body.iter_lines():
                    yield line.decode(encoding)
            finally:
                body.close()

        return OperationResult.success(lines(), key=key)

    # Download

    def _download(
        self, key: str, destination: str, remove_after_download: bool
    ) -> str:
        response = self._get_object(key)
        parent = os.path.dirname(destination)
        if parent:
            os.makedirs(parent, exist_ok=True)

        # Written beside the destination and renamed once complete
        partial = destination + _PARTIAL_SUFFIX
        body = response["Body"]
        try:
            try:
                with open(partial, "wb") as f:
                    shutil.copyfileobj(body, f, _COPY_BUFFER_SIZE)
            finally:
                body.close()

            expected = response.get("ContentLength")
            written = os.path.getsize(partial)
            if expected is not None and written != expected:
                raise StorageOperationError(
                    f"Local copy has {written} bytes, expected {expected}",
                    kind=ErrorKind.LOCAL,
                    key=key,
                )
            os.replace(partial, destination)
        finally:
            if os.path.exists(partial):
                os.remove(partial)

        if remove_after_download:
            self._delete(key)

        logger.info(
            "S3 object downloaded",
            key=key,
            destination=destination,
            removed=remove_after_download,
        )
        return destination

    def download_file(
        self, key: str, destination: str, remove_after_download: bool = False
    ) -> OperationResult[str]:
        """Stream an object to a local file.

        Args:
            key: Object key
            destination: Local file path, parent directories are created
            remove_after_download: Delete the remote object once the local
                file size matches the object size

        Returns:
            Result holding the local file path
        """
        key = normalize_key(key)
        try:
            return OperationResult.success(
                self._download(key, destination, remove_after_download), key=key
            )
        except HANDLED_ERRORS as e:
            return failure_from_error("download", e, key)

    def download_from_folder(
        self,
        folder: str,
        filename: str,
        dest_folder: str,
        dest_filename: Optional[str] = None,
        remove_after_download: bool = False,
    ) -> OperationResult[str]:
        """Download ``folder/filename`` into ``dest_folder``."""
        key = join_key(folder, filename)
        destination = os.path.join(
            dest_folder, os.path.basename(dest_filename or key_basename(key))
        )
        return self.download_file(key, destination, remove_after_download)

    # Upload

    def _put(self, body: IO[bytes], key: str, reduced_redundancy: bool) -> str:
        self.client_manager.ensure_bucket(create_if_missing=True)
        response = self.client_manager.client.put_object(
            Bucket=self.bucket,
            Key=key,
            Body=body,
            StorageClass=REDUCED_REDUNDANCY if reduced_redundancy else STANDARD,
        )
        check_response(response, "put_object", key)
        logger.info(
            "S3 object uploaded", key=key, reduced_redundancy=reduced_redundancy
        )
        return key

    def upload_file(
        self, local_path: str, key: str, reduced_redundancy: bool = False
    ) -> OperationResult[str]:
        """Upload a local file, creating the bucket if it does not exist."""
        key = normalize_key(key)
        try:
            with open(local_path, "rb") as f:
                return OperationResult.success(
                    self._put(f, key, reduced_redundancy), key=key
                )
        except HANDLED_ERRORS as e:
            return failure_from_error("upload", e, key)

    def upload_stream(
        self, stream: IO[bytes], key: str, reduced_redundancy: bool = False
    ) -> OperationResult[str]:
        """Upload the contents of a binary stream."""
        key = normalize_key(key)
        try:
            return OperationResult.success(
                self._put(stream, key, reduced_redundancy), key=key
            )
        except HANDLED_ERRORS as e:
            return failure_from_error("upload", e, key)

    def upload_to_folder(
        self,
        local_path: str,
        dest_folder: str,
        dest_filename: Optional[str] = None,
        reduced_redundancy: bool = False,
    ) -> OperationResult[str]:
        """Upload a local file as ``dest_folder/dest_filename``."""
        key = join_key(dest_folder, dest_filename or os.path.basename(local_path))
        return self.upload_file(local_path, key, reduced_redundancy)

    # Delete

    def _delete(self, key: str) -> None:
        # Nothing to delete from a bucket that does not exist
        if not self.client_manager.ensure_bucket(create_if_missing=False):
            return
        self._retry(
            "delete_object",
            lambda: self.client_manager.client.delete_object(
                Bucket=self.bucket, Key=key
            ),
            key,
        )
        logger.debug("S3 object deleted", key=key)

    def delete_file(self, key: str) -> OperationResult[str]:
        """Delete an object, retrying transient failures."""
        key = normalize_key(key)
        try:
            self._delete(key)
            return OperationResult.success(key, key=key)
        except HANDLED_ERRORS as e:
            return failure_from_error("delete", e, key)

    def delete_file_in_folder(self, folder: str, filename: str) -> OperationResult[str]:
        return self.delete_file(join_key(folder, filename))

    def delete_folder(self, folder: str) -> BatchResult:
        """Delete every object under a folder prefix.

        Failing deletes are recorded and the remaining keys are still
        processed; the batch is successful only if every delete succeeded.
        """
        folder = folder_prefix(folder)
        batch = BatchResult()
        try:
            keys = self.lister.iter_keys(folder, recursive=True, raise_on_error=True)
            for key in keys:
                batch.record(key, self.delete_file(key))
        except HANDLED_ERRORS as e:
            batch.failed[folder or ""] = failure_from_error(
                "list", e, folder
            ).error_message

        logger.info(
            "S3 folder delete completed",
            folder=folder,
            deleted=len(batch.succeeded),
            failed=len(batch.failed),
        )
        return batch

    # Copy and move

    def _copy(self, key: str, dest_key: str) -> str:
        self.client_manager.ensure_bucket(create_if_missing=True)
        client = self.client_manager.client

        acl = self._retry(
            "get_object_acl",
            lambda: client.get_object_acl(Bucket=self.bucket, Key=key),
            key,
        )
        self._retry(
            "copy_object",
            lambda: client.copy_object(
                Bucket=self.bucket,
                Key=dest_key,
                CopySource={"Bucket": self.bucket, "Key": key},
            ),
            key,
        )
        # S3 does not carry custom ACLs over to the copy
        self._retry(
            "put_object_acl",
            lambda: client.put_object_acl(
                Bucket=self.bucket,
                Key=dest_key,
                AccessControlPolicy={"Grants": acl["Grants"], "Owner": acl["Owner"]},
            ),
            dest_key,
        )
        logger.debug("S3 object copied", key=key, dest_key=dest_key)
        return dest_key

    def copy_file(self, key: str, dest_key: str) -> OperationResult[str]:
        """Server-side copy that preserves the source object's ACL."""
        key = normalize_key(key)
        dest_key = normalize_key(dest_key)
        try:
            return OperationResult.success(self._copy(key, dest_key), key=key)
        except HANDLED_ERRORS as e:
            return failure_from_error("copy", e, key)

    def copy_file_in_folder(
        self, folder: str, filename: str, dest_folder: str, dest_filename: str
    ) -> OperationResult[str]:
        return self.copy_file(
            join_key(folder, filename), join_key(dest_folder, dest_filename)
        )

    def move_file(self, key: str, dest_key: str) -> OperationResult[str]:
        """Copy an object then delete the source.

        Not atomic: if the delete fails both objects remain.
        """
        key = normalize_key(key)
        dest_key = normalize_key(dest_key)
        try:
            self._copy(key, dest_key)
            self._delete(key)
            return OperationResult.success(dest_key, key=key)
        except HANDLED_ERRORS as e:
            return failure_from_error("move", e, key)

    def move_file_in_folder(
        self, folder: str, filename: str, dest_folder: str, dest_filename: str
    ) -> OperationResult[str]:
        return self.move_file(
            join_key(folder, filename), join_key(dest_folder, dest_filename)
        )

    def _transfer_folder(
        self,
        folder: str,
        dest_folder: str,
        operation: Callable[[str, str], OperationResult],
        name: str,
    ) -> BatchResult:
        folder = folder_prefix(folder)
        batch = BatchResult()
        try:
            # Materialize first so moved keys don't show up mid-listing
            keys = list(
                self.lister.iter_keys(folder, recursive=True, raise_on_error=True)
            )
        except HANDLED_ERRORS as e:
            batch.failed[folder or ""] = failure_from_error(
                "list", e, folder
            ).error_message
            return batch

        for key in keys:
            result = operation(key, replace_base_folder(key, folder, dest_folder))
            batch.record(key, result)
            if not result.ok:
                batch.stopped_early = True
                break

        logger.info(
            "S3 folder transfer completed",
            operation=name,
            folder=folder,
            dest_folder=dest_folder,
            processed=len(batch.succeeded),
            failed=len(batch.failed),
        )
        return batch

    def copy_folder(self, folder: str, dest_folder: str) -> BatchResult:
        """Copy every object under ``folder`` to ``dest_folder``.

        Stops at the first failing object.
        """
        return self._transfer_folder(folder, dest_folder, self.copy_file, "copy")

    def move_folder(self, folder: str, dest_folder: str) -> BatchResult:
        """Move every object under ``folder`` to ``dest_folder``.

        Stops at the first failing object.
        """
        return self._transfer_folder(folder, dest_folder, self.move_file, "move")

    # Search

    def find_first_match(
        self,
        folder: str,
        pattern: str,
        dest_folder: str,
        remove_after_download: bool = False,
    ) -> OperationResult[Optional[str]]:
        """Download the first object under ``folder`` whose name matches.

        Args:
            folder: Folder prefix searched recursively
            pattern: Wildcard matched against the object's base name
            dest_folder: Local directory to download into
            remove_after_download: Delete the remote object afterwards

        Returns:
            Result holding the local path, or None when nothing matched
        """
        folder = folder_prefix(folder)
        regex = wildcard_to_regex(pattern)
        try:
            keys = self.lister.iter_keys(folder, recursive=True, raise_on_error=True)
            for key in keys:
                if is_folder_marker(key) or not regex.fullmatch(key_basename(key)):
                    continue
                local_path = os.path.join(dest_folder, key_basename(key))
                self._download(key, local_path, remove_after_download)
                return OperationResult.success(local_path, key=key)

            logger.info("No S3 object matched", folder=folder, pattern=pattern)
            return OperationResult.success(None, key=folder)

        except HANDLED_ERRORS as e:
            return failure_from_error("find", e, folder)
