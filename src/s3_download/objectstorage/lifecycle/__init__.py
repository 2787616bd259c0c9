"""Bucket lifecycle rule management."""

from .lifecycle_rules import LifecycleRule, S3LifecycleManager

__all__ = ["LifecycleRule", "S3LifecycleManager"]
