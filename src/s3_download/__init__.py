"""Download, restore and manage objects in S3 buckets.

This package wraps a boto3 S3 client with retrying, typed-result façades for
listing, object transfer and lifecycle rules, plus a restore pipeline that
mirrors a bucket folder onto the local filesystem.

Recommended Usage:
    >>> from s3_download import S3BucketHelper, S3ClientConfig
    >>> config = S3ClientConfig(bucket_name="backups", aws_profile="prod")
    >>> with S3BucketHelper(config) as helper:
    ...     result = helper.objects.download_file("logs/app.log", "/tmp/app.log")
    ...     result.ok
    True

Restoring a folder:
    >>> from s3_download import RestoreConfig, restore_from_s3
    >>> report = restore_from_s3(
    ...     helper, RestoreConfig(source_prefix="site", output_directory="./site")
    ... )
"""

__version__ = "0.1.0"

from .core import ErrorKind, S3DownloadError, ValidationError
from .core.exceptions import (
    RetriesExhaustedError,
    SessionClosedError,
    StorageOperationError,
)
from .objectstorage import (
    BatchResult,
    LifecycleRule,
    OperationResult,
    RetryPolicy,
    S3BucketHelper,
    S3ClientConfig,
    S3ClientManager,
    S3LifecycleManager,
    S3ObjectLister,
    S3ObjectOperations,
    join_key,
    normalize_key,
    replace_base_folder,
)
from .restore import (
    TEXT_FILE_EXTENSIONS,
    RestoreConfig,
    RestoreReport,
    extract_gzip,
    restore_from_s3,
    ungzip_files,
)

__all__ = [
    # Errors
    "ErrorKind",
    "RetriesExhaustedError",
    "S3DownloadError",
    "SessionClosedError",
    "StorageOperationError",
    "ValidationError",
    # Sessions and façades
    "S3BucketHelper",
    "S3ClientConfig",
    "S3ClientManager",
    "S3LifecycleManager",
    "S3ObjectLister",
    "S3ObjectOperations",
    "RetryPolicy",
    # Results
    "BatchResult",
    "LifecycleRule",
    "OperationResult",
    # Keys
    "join_key",
    "normalize_key",
    "replace_base_folder",
    # Restore
    "TEXT_FILE_EXTENSIONS",
    "RestoreConfig",
    "RestoreReport",
    "extract_gzip",
    "restore_from_s3",
    "ungzip_files",
]
