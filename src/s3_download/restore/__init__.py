"""Restore bucket folders to the local filesystem."""

from .gzip_extract import extract_gzip, ungzip_files
from .pipeline import (
    TEXT_FILE_EXTENSIONS,
    RestoreConfig,
    RestoreReport,
    restore_from_s3,
)

__all__ = [
    "TEXT_FILE_EXTENSIONS",
    "RestoreConfig",
    "RestoreReport",
    "extract_gzip",
    "restore_from_s3",
    "ungzip_files",
]
