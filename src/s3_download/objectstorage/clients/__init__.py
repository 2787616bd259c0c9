"""S3 client session management."""

from .s3_client import S3ClientConfig, S3ClientManager

__all__ = ["S3ClientConfig", "S3ClientManager"]
