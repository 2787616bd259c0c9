"""Restore a bucket prefix onto the local filesystem.

The restore runs as three stages:

    1. list: every key under the source prefix (optionally one level only)
    2. filter: drop folder markers, keys outside the extension allow-list and
       excluded file names
    3. fetch: download keys that are not already present locally, optionally
       saving them as ``.gz`` and extracting them

A failure on one file is recorded in the report and never aborts the batch.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from s3_download.core import get_logger, get_tracer, log_context
from s3_download.core.exceptions import ValidationError
from s3_download.objectstorage.helper import S3BucketHelper
from s3_download.objectstorage.keys import (
    DELIMITER,
    folder_prefix,
    is_folder_marker,
    key_basename,
)
from s3_download.objectstorage.results import HANDLED_ERRORS
from s3_download.restore.gzip_extract import GZIP_SUFFIX, extract_gzip

logger = get_logger(__name__)
tracer = get_tracer(__name__)

# Truncated gzip streams raise EOFError
_FILE_ERRORS = HANDLED_ERRORS + (EOFError,)

# Web site source and config files
TEXT_FILE_EXTENSIONS: tuple[str, ...] = (
    ".asp", ".htm", ".html", ".asa", ".js", ".vbs", ".css", ".aspx", ".inc",
    ".txt", ".php", ".xml", ".cs", ".ascx", ".config", ".dbml", ".xsl",
    ".master", ".vb", ".asax", ".asmx", ".ashx", ".xsd", ".skin", ".dns",
    ".cshtml",
)


class RestoreConfig(BaseModel):
    """What to restore and where to put it."""

    model_config = ConfigDict(extra="forbid")

    source_prefix: str = Field("", description="Bucket folder to restore")
    output_directory: str = Field(..., description="Local directory to restore into")
    extensions: Optional[list[str]] = Field(
        None, description="Only restore files with these extensions"
    )
    exclude_names: list[str] = Field(
        default_factory=list, description="File names never restored"
    )
    recursive: bool = Field(True, description="Include files in sub-folders")
    assume_gzip: bool = Field(
        False, description="Objects are gzip streams; save them with a .gz suffix"
    )
    extract_gzip: bool = Field(
        False, description="Extract downloaded .gz files and delete the archive"
    )

    @field_validator("extensions")
    @classmethod
    def _normalize_extensions(cls, value: Optional[list[str]]) -> Optional[list[str]]:
        if value is None:
            return None
        return [
            ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in value
        ]

    @field_validator("exclude_names")
    @classmethod
    def _normalize_names(cls, value: list[str]) -> list[str]:
        return [name.lower() for name in value]


@dataclass
class RestoreReport:
    """Itemized outcome of a restore run."""

    downloaded: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


def matches_filters(key: str, config: RestoreConfig) -> bool:
    """Check a key against the folder-marker, extension and name filters."""
    if is_folder_marker(key):
        return False
    name = key_basename(key).lower()
    if config.extensions is not None:
        if os.path.splitext(name)[1] not in config.extensions:
            return False
    return name not in config.exclude_names


def list_candidates(helper: S3BucketHelper, config: RestoreConfig) -> Iterator[str]:
    """List and filter the keys to restore."""
    keys = helper.lister.iter_keys(
        folder_prefix(config.source_prefix),
        recursive=config.recursive,
        raise_on_error=True,
    )
    for key in keys:
        if matches_filters(key, config):
            yield key


def local_path_for(key: str, config: RestoreConfig) -> Path:
    """Mirror a key under the output directory, relative to the source prefix."""
    prefix = folder_prefix(config.source_prefix)
    relative = key[len(prefix) :] if key.startswith(prefix) else key
    relative = relative.lstrip(DELIMITER)

    root = Path(config.output_directory).resolve()
    target = (root / relative).resolve()
    if root != target and root not in target.parents:
        raise ValidationError(f"Key '{key}' resolves outside {root}")
    return target


def fetch(helper: S3BucketHelper, key: str, config: RestoreConfig) -> bool:
    """Download one key.

    Returns:
        False when the file was already present locally
    """
    local_path = local_path_for(key, config)
    download_path = (
        local_path.with_name(local_path.name + GZIP_SUFFIX)
        if config.assume_gzip
        else local_path
    )
    if local_path.exists() or download_path.exists():
        return False

    helper.objects.download_file(key, str(download_path)).unwrap()
    if config.assume_gzip and config.extract_gzip:
        try:
            extract_gzip(str(download_path), delete_original=True)
        except _FILE_ERRORS:
            # A leftover archive would be skipped on the next run
            download_path.unlink(missing_ok=True)
            raise
    return True


def restore_from_s3(helper: S3BucketHelper, config: RestoreConfig) -> RestoreReport:
    """Run the list → filter → fetch pipeline.

    Args:
        helper: Session for the bucket to restore from
        config: Restore configuration

    Returns:
        RestoreReport listing downloaded, skipped and failed keys
    """
    report = RestoreReport()
    with tracer.start_as_current_span("restore_from_s3") as span, log_context(
        bucket=helper.bucket_name
    ):
        span.set_attribute("s3.bucket", helper.bucket_name)
        span.set_attribute("s3.prefix", config.source_prefix)
        logger.info(
            "Starting restore",
            source_prefix=config.source_prefix,
            output_directory=config.output_directory,
        )

        try:
            for key in list_candidates(helper, config):
                try:
                    if fetch(helper, key, config):
                        report.downloaded.append(key)
                    else:
                        report.skipped.append(key)
                except _FILE_ERRORS as e:
                    logger.warning("Restore of file failed", key=key, error=str(e))
                    report.failed[key] = str(e)
        except HANDLED_ERRORS as e:
            error_msg = f"Listing '{config.source_prefix}' failed: {e}"
            logger.error(error_msg, error=str(e))
            report.failed[config.source_prefix] = error_msg

        span.set_attribute("restore.downloaded", len(report.downloaded))
        span.set_attribute("restore.failed", len(report.failed))

    logger.info(
        "Restore completed",
        downloaded=len(report.downloaded),
        skipped=len(report.skipped),
        failed=len(report.failed),
    )
    return report
