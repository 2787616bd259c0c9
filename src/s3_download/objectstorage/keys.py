"""Helpers for turning local-style paths into S3 object keys."""

from typing import Optional

DELIMITER = "/"


def normalize_key(path: Optional[str]) -> Optional[str]:
    """Convert a local-style path to S3 key style.

    Backslashes become forward slashes and exactly one leading slash is
    removed. Empty or ``None`` input is returned unchanged.

    Examples:
        >>> normalize_key("\\\\data\\\\2024\\\\file.txt")
        'data/2024/file.txt'
        >>> normalize_key("/logs/app.log")
        'logs/app.log'
    """
    if not path:
        return path
    path = path.replace("\\", DELIMITER)
    if path.startswith(DELIMITER):
        path = path[1:]
    return path


def join_key(folder: Optional[str], name: Optional[str]) -> str:
    """Join a folder prefix and a file name into a normalized key."""
    folder = normalize_key(folder) or ""
    name = normalize_key(name) or ""
    if not folder:
        return name
    if not name:
        return folder
    if not folder.endswith(DELIMITER):
        folder += DELIMITER
    return folder + name


def replace_base_folder(path: str, old_base: str, new_base: str) -> str:
    """Rewrite a key from one folder prefix to another.

    If ``path`` does not live under ``old_base`` the normalized path is
    returned unchanged.

    Args:
        path: Key (or local-style path) to rewrite
        old_base: Folder prefix to replace
        new_base: Folder prefix to put in its place

    Returns:
        Normalized key
    """
    path = DELIMITER + (normalize_key(path) or "")
    old_base = DELIMITER + (normalize_key(old_base) or "")
    new_base = DELIMITER + (normalize_key(new_base) or "")

    if not old_base.endswith(DELIMITER):
        old_base += DELIMITER
    if not new_base.endswith(DELIMITER):
        new_base += DELIMITER

    if not path.startswith(old_base):
        return normalize_key(path)
    return normalize_key(new_base + path[len(old_base) :])


def key_basename(key: str) -> str:
    """Return the last path component of a key."""
    return key.rstrip(DELIMITER).rsplit(DELIMITER, 1)[-1]


def is_folder_marker(key: str) -> bool:
    """Return True for zero-byte "directory" keys ending with the delimiter."""
    return key.endswith(DELIMITER)


def folder_prefix(folder: Optional[str]) -> str:
    """Turn a folder path into a listing prefix ending with the delimiter.

    ``logs`` becomes ``logs/`` so that a listing never picks up a sibling
    such as ``logs-archive/``. An empty folder means the whole bucket.
    """
    prefix = (normalize_key(folder) or "").rstrip(DELIMITER)
    return prefix + DELIMITER if prefix else ""
