"""Core utilities and shared components for s3-download."""

from .config import settings
from .exceptions import ErrorKind, S3DownloadError, ValidationError
from .observability import get_logger, get_tracer, log_context, set_log_level

__all__ = [
    "settings",
    "ErrorKind",
    "S3DownloadError",
    "ValidationError",
    "get_logger",
    "get_tracer",
    "log_context",
    "set_log_level",
]
