"""
Rehosting of files still served by the old CMS.

Record bodies and project cover images may point at uploads on the old
WordPress site (``https://cms.bluedot.org/u/...``).  Each distinct URL is
downloaded once, uploaded to the object store under a fresh key, and every
occurrence in the text is replaced by the new public URL.  A URL that
fails to download or upload is logged and left as it was, so one broken
file never blocks the rest of a record.
"""

from __future__ import annotations

import logging
import os
import re
from typing import Callable, Dict, List, Pattern, Tuple, Union
from urllib.parse import urlparse

from ..exceptions import AssetError

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"

CONTENT_TYPES: Dict[str, str] = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".webp": "image/webp",
    ".pdf": "application/pdf",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}

_EXTENSIONS: Dict[str, str] = {
    "image/jpeg": ".jpg",
    "image/svg+xml": ".svg",
    "application/msword": ".doc",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": ".docx",
    DEFAULT_CONTENT_TYPE: "",
}

Download = Callable[[str], bytes]
Upload = Callable[[bytes, str], str]


def _compile(pattern: Union[str, Pattern[str]]) -> Pattern[str]:
    return re.compile(pattern) if isinstance(pattern, str) else pattern


def find_old_cms_urls(text: str, pattern: Union[str, Pattern[str]]) -> List[str]:
    """Return the distinct URLs matching ``pattern`` in first-seen order."""
    seen: Dict[str, None] = {}
    for match in _compile(pattern).finditer(text or ""):
        seen.setdefault(match.group(0), None)
    return list(seen)


def guess_content_type(url: str) -> str:
    extension = os.path.splitext(urlparse(url).path)[1].lower()
    return CONTENT_TYPES.get(extension, DEFAULT_CONTENT_TYPE)


def extension_for(content_type: str) -> str:
    """File extension (with dot) for a MIME type, e.g. ``image/png`` -> ``.png``."""
    if content_type in _EXTENSIONS:
        return _EXTENSIONS[content_type]
    subtype = content_type.rsplit("/", 1)[-1]
    return f".{subtype}" if subtype else ""


def rehost_url(url: str, download: Download, upload: Upload) -> str:
    """Copy one file to the object store and return its new URL.

    :raises AssetError: if the download or the upload fails.
    """
    data = download(url)
    return upload(data, guess_content_type(url))


def replace_old_cms_urls(
    text: str,
    download: Download,
    upload: Upload,
    pattern: Union[str, Pattern[str]],
) -> Tuple[str, Dict[str, str]]:
    """Rehost every old CMS URL found in ``text``.

    Returns the rewritten text and the map of old to new URLs.  URLs that
    could not be rehosted are missing from the map and stay in the text.
    """
    url_map: Dict[str, str] = {}
    for old_url in find_old_cms_urls(text, pattern):
        try:
            logger.info("Processing URL: %s", old_url)
            url_map[old_url] = rehost_url(old_url, download, upload)
            logger.info("Migrated %s to %s", old_url, url_map[old_url])
        except AssetError as e:
            logger.error("Failed to process URL %s: %s", old_url, e)

    updated = text
    for old_url, new_url in url_map.items():
        updated = updated.replace(old_url, new_url)
    return updated, url_map
