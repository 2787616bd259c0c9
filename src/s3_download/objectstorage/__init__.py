"""Object storage operations for S3 buckets."""

from .clients import S3ClientConfig, S3ClientManager
from .helper import S3BucketHelper
from .keys import folder_prefix, join_key, normalize_key, replace_base_folder
from .lifecycle import LifecycleRule, S3LifecycleManager
from .listing import ListingPage, S3ObjectLister
from .operations import S3ObjectOperations
from .results import BatchResult, OperationResult
from .retry import RetryPolicy, classify_error

__all__ = [
    "BatchResult",
    "LifecycleRule",
    "ListingPage",
    "OperationResult",
    "RetryPolicy",
    "S3BucketHelper",
    "S3ClientConfig",
    "S3ClientManager",
    "S3LifecycleManager",
    "S3ObjectLister",
    "S3ObjectOperations",
    "classify_error",
    "folder_prefix",
    "join_key",
    "normalize_key",
    "replace_base_folder",
]
