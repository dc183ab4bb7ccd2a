"""
Utilities for building asset directories and turning remote filenames into safe local ones.
"""

import hashlib
import re
from pathlib import Path
from typing import Optional

from pathvalidate import sanitize_filename

DEFAULT_DOWNLOAD_TYPE = "general"

# Applied in order to the filename stem; the extension is never touched.
_STEM_RULES = (
    (re.compile(r"(\d+)\.(\d+)\.(\d+)"), r"\1-\2-\3"),
    (re.compile(r"(\d+)\.(\d+)"), r"\1-\2"),
    (re.compile(r"([a-zA-Z0-9])\(([^)]+)\)"), r"\1-\2"),
    (re.compile(r"[()'$]"), "-"),
    (re.compile(r"-+"), "-"),
    (re.compile(r"-+$"), ""),
)
_EXTENSION = re.compile(r"\.[A-Za-z0-9]+$")


def create_dir(directory_path: Path) -> None:
    """Creates a directory if it does not already exist."""
    directory_path.mkdir(parents=True, exist_ok=True)


def normalize_local_path(path: Optional[str]) -> Optional[str]:
    """Returns the path with forward slashes, or None for an empty value."""
    if not path:
        return None
    return str(path).replace("\\", "/")


def transform_file_name(file_name: str) -> str:
    """
    Rewrites a filename into the form the destination CMS accepts.

    Dotted numbers become hyphenated (``7.29.2021`` -> ``7-29-2021``,
    ``v2.0`` -> ``v2-0``), ``x(y)`` becomes ``x-y``, and any leftover
    parentheses, apostrophes or dollar signs turn into hyphens. Runs of
    hyphens are collapsed and a trailing hyphen is dropped. The result is
    passed through pathvalidate so it is always a legal filename.
    """
    match = _EXTENSION.search(file_name)
    extension = match.group(0) if match else ""
    stem = file_name[: len(file_name) - len(extension)]

    for pattern, replacement in _STEM_RULES:
        stem = pattern.sub(replacement, stem)

    return sanitize_filename(f"{stem}{extension}", platform="auto")


def normalize_download_type(download_type: Optional[str]) -> str:
    """Lower-cases a download type tag and replaces whitespace with hyphens."""
    if not download_type or not download_type.strip():
        return DEFAULT_DOWNLOAD_TYPE
    return re.sub(r"\s+", "-", download_type.strip().lower())


def disambiguate_file_name(file_name: str, key: str) -> str:
    """
    Appends a short digest of ``key`` to the stem of ``file_name``:
    ``report.pdf`` -> ``report-1a2b3c4d.pdf``. The same key always gives
    the same name.
    """
    digest = hashlib.sha1(key.encode("utf-8")).hexdigest()[:8]
    match = _EXTENSION.search(file_name)
    extension = match.group(0) if match else ""
    stem = file_name[: len(file_name) - len(extension)]
    return f"{stem}-{digest}{extension}"
