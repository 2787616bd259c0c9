"""One-stop helper bundling every façade on a single S3 session."""

from typing import Optional

from s3_download.core import get_logger
from s3_download.objectstorage.clients import S3ClientConfig, S3ClientManager
from s3_download.objectstorage.lifecycle import S3LifecycleManager
from s3_download.objectstorage.listing import S3ObjectLister
from s3_download.objectstorage.operations import S3ObjectOperations
from s3_download.objectstorage.retry import RetryPolicy

logger = get_logger(__name__)


class S3BucketHelper:
    """Listing, object and lifecycle operations for one bucket.

    Example:
        >>> config = S3ClientConfig(bucket_name="backups", region_name="eu-west-1")
        >>> with S3BucketHelper(config) as helper:
        ...     for key in helper.lister.iter_keys("logs/", recursive=False):
        ...         print(key)
    """

    def __init__(
        self,
        config: S3ClientConfig,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self.client_manager = S3ClientManager(config)
        self.retry_policy = retry_policy or RetryPolicy()
        self.lister = S3ObjectLister(
            self.client_manager, retry_policy=self.retry_policy
        )
        self.objects = S3ObjectOperations(
            self.client_manager, lister=self.lister, retry_policy=self.retry_policy
        )
        self.lifecycle = S3LifecycleManager(self.client_manager)

    @classmethod
    def from_credentials(
        cls,
        bucket_name: str,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        region_name: Optional[str] = None,
        **kwargs,
    ) -> "S3BucketHelper":
        """Build a helper from plain credential arguments."""
        config_kwargs = dict(
            bucket_name=bucket_name,
            access_key_id=access_key_id,
            secret_access_key=secret_access_key,
            **kwargs,
        )
        if region_name:
            config_kwargs["region_name"] = region_name
        return cls(S3ClientConfig(**config_kwargs))

    @property
    def bucket_name(self) -> str:
        return self.client_manager.bucket_name

    def bucket_exists(self) -> bool:
        return self.client_manager.bucket_exists()

    def ensure_bucket(self, create_if_missing: bool = True) -> bool:
        return self.client_manager.ensure_bucket(create_if_missing=create_if_missing)

    def close(self) -> None:
        self.client_manager.close()

    def __enter__(self) -> "S3BucketHelper":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()
