"""Object-level S3 operations."""

from .object_operations import S3ObjectOperations, wildcard_to_regex

__all__ = ["S3ObjectOperations", "wildcard_to_regex"]
