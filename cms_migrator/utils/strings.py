"""
String helpers for URLs and CMS page names.
"""

import posixpath
import re
from urllib.parse import urlsplit, urlunsplit

MAX_SEO_NAME_LENGTH = 230

_FILE_EXTENSION = re.compile(r"\.[A-Za-z][A-Za-z0-9]{0,7}$")
_SEO_STRIP = re.compile(r"[!\"`'#%&,:;<>=@{}~?$()*+/\\\[\]^|.]")


def is_absolute_url(value: str) -> bool:
    """True when the value carries both a scheme and a host."""
    parts = urlsplit(value)
    return bool(parts.scheme and parts.netloc)


def url_filename(url: str) -> str:
    """Returns the last segment of the URL path (may be empty)."""
    return urlsplit(url).path.rstrip("/").rsplit("/", 1)[-1]


def url_has_file_extension(url: str) -> bool:
    return bool(_FILE_EXTENSION.search(url_filename(url)))


def join_url(base_url: str, relative: str) -> str:
    """
    Appends a relative path to the path of a base URL.

    Unlike urljoin, a leading slash on the relative part does not discard
    the base path, so ``join_url("https://a/files/", "/doc/x.pdf")`` gives
    ``https://a/files/doc/x.pdf``.
    """
    if is_absolute_url(relative):
        return relative
    parts = urlsplit(base_url)
    path = posixpath.join(parts.path or "/", relative.lstrip("/"))
    return urlunsplit((parts.scheme, parts.netloc, path, "", ""))


def to_page_slug(text: str) -> str:
    """Converts a title into a CMS-friendly page name."""
    slug = _SEO_STRIP.sub("", text.strip())
    slug = re.sub(r"\s+", "-", slug)
    return re.sub(r"-+", "-", slug).strip("-")


def build_seo_name(title: str, date_text: str | None) -> str:
    """
    Builds the SEO page name for a new record: the slugged title capped at
    230 characters, suffixed with the record date as ``-MM-DD-YYYY``.
    """
    slug = to_page_slug(title)[:MAX_SEO_NAME_LENGTH].rstrip("-")
    if date_text:
        slug = f"{slug}-{date_text.replace('/', '-')}"
    return slug
