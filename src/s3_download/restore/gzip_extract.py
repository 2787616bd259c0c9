"""Gzip extraction for restored files."""

import gzip
import os
import shutil
from pathlib import Path

from s3_download.core import get_logger
from s3_download.core.exceptions import ValidationError

logger = get_logger(__name__)

GZIP_SUFFIX = ".gz"

_BUFFER_SIZE = 4096
_PARTIAL_SUFFIX = ".part"


def extract_gzip(gzip_path: str, delete_original: bool = False) -> str:
    """Decompress a single-member gzip file next to itself.

    ``backup/site.html.gz`` is written to ``backup/site.html``.

    Args:
        gzip_path: Path of the compressed file
        delete_original: Remove the compressed file after extraction

    Returns:
        Path of the extracted file
    """
    source = Path(gzip_path)
    if source.suffix.lower() != GZIP_SUFFIX:
        raise ValidationError(f"Not a gzip file name: {gzip_path}")

    target = source.with_suffix("")
    partial = target.with_name(target.name + _PARTIAL_SUFFIX)
    try:
        with gzip.open(source, "rb") as compressed, open(partial, "wb") as out:
            shutil.copyfileobj(compressed, out, _BUFFER_SIZE)
        os.replace(partial, target)
    finally:
        if partial.exists():
            partial.unlink()

    if delete_original:
        os.remove(source)

    logger.debug("Gzip file extracted", source=str(source), target=str(target))
    return str(target)


def ungzip_files(directory: str, delete_original: bool = True) -> list[str]:
    """Extract every ``*.gz`` file below a directory.

    Returns:
        Paths of the extracted files
    """
    root = Path(directory)
    if not root.is_dir():
        raise ValidationError(f"Not a directory: {directory}")

    extracted = []
    for gz_file in sorted(root.rglob(f"*{GZIP_SUFFIX}")):
        extracted.append(extract_gzip(str(gz_file), delete_original))

    logger.info("Gzip files extracted", directory=directory, count=len(extracted))
    return extracted
