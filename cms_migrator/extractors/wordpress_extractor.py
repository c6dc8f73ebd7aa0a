"""
Field extraction and record normalisation for WordPress export items.

Every ``get_*`` helper takes one ``<item>`` :class:`Branch` and returns a
plain value.  Missing or oddly shaped fields resolve to the empty value of
their type; nothing in this module raises for bad data.  The
``build_*``/``normalize_*`` functions assemble those values into
:class:`BlogRecord` and :class:`ProjectRecord` objects.
"""

from __future__ import annotations

import logging
import math
import re
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Iterable, List, Optional, Sequence, Tuple

from ..config import SitesConfig
from ..models.cms_records import BlogRecord, ProjectRecord
from ..parsers.markdown_parser import convert_html_to_markdown, is_blank
from ..utils.report import RunReport
from .wxr_tree import Branch, attribute, child, iter_nodes, resolve_text

logger = logging.getLogger(__name__)

PROJECT_POST_TYPE = "project"
ATTACHMENT_POST_TYPE = "attachment"

SITE_DOMAIN = "category"
TAG_DOMAIN = "post_tag"
COURSE_DOMAIN = "project_collection"

# Negative year, as in the WordPress zero date "Mon, 30 Nov -0001 00:00:00 +0000"
_NEGATIVE_YEAR_RE = re.compile(r"\b[A-Za-z]{3}\s+-\d+\s")


###############################################################################
# Plain fields
###############################################################################

def _field(item: Branch, tag: str) -> str:
    return resolve_text(child(item, tag))


def get_title(item: Branch) -> str:
    return _field(item, "title")


def get_slug(item: Branch) -> str:
    return _field(item, "wp:post_name")


def get_post_id(item: Branch) -> str:
    return _field(item, "wp:post_id").strip()


def get_status(item: Branch) -> str:
    return _field(item, "wp:status").strip()


def get_post_type(item: Branch) -> str:
    return _field(item, "wp:post_type").strip()


def get_creator(item: Branch) -> str:
    return _field(item, "dc:creator")


def get_publish_date(item: Branch) -> str:
    return _field(item, "pubDate").strip()


def get_link(item: Branch) -> str:
    return _field(item, "link").strip()


def get_content_html(item: Branch) -> str:
    return _field(item, "content:encoded")


def get_attachment_url(item: Branch) -> str:
    return _field(item, "wp:attachment_url").strip()


###############################################################################
# Post meta
###############################################################################

def find_meta_value(item: Branch, key: str) -> Optional[str]:
    """Return the value of the first ``wp:postmeta`` entry keyed ``key``.

    Args:
        item: The ``<item>`` node.
        key: The ``wp:meta_key`` to look for.

    Returns:
        The entry's ``wp:meta_value`` text, or ``None`` when no entry has
        that key.  An entry that exists with an empty value returns ``""``.
    """
    for meta in iter_nodes(child(item, "wp:postmeta")):
        if resolve_text(child(meta, "wp:meta_key")) == key:
            return resolve_text(child(meta, "wp:meta_value"))
    return None


def get_author_name(item: Branch) -> str:
    """Author from the ``author`` meta entry, falling back to ``dc:creator``."""
    name = find_meta_value(item, "author")
    if name is None:
        return get_creator(item)
    return name


def get_author_url(item: Branch) -> str:
    return find_meta_value(item, "author_url") or ""


def get_thumbnail_id(item: Branch) -> str:
    return (find_meta_value(item, "_thumbnail_id") or "").strip()


###############################################################################
# Cover images
###############################################################################

def loose_equals(left: str, right: str) -> bool:
    """Compare two post ids the way a loosely typed export expects.

    ``"42"`` equals ``"042"`` and ``" 42 "``; blank ids never match.
    """
    a = (left or "").strip()
    b = (right or "").strip()
    if not a or not b:
        return False
    try:
        return int(a) == int(b)
    except ValueError:
        return a == b


def find_attachment(attachments: Iterable[Branch], thumbnail_id: str) -> Optional[Branch]:
    if not thumbnail_id:
        return None
    for attachment in attachments:
        if loose_equals(thumbnail_id, get_post_id(attachment)):
            return attachment
    return None


def get_cover_image(item: Branch, attachments: Sequence[Branch] = ()) -> str:
    """Resolve a project's cover image URL.

    Resolution order:

    1. the attachment item whose post id matches ``_thumbnail_id``,
    2. a ``wp:attachment_url`` meta entry on the item,
    3. the item's own ``wp:attachment_url`` element,
    4. the empty string.
    """
    attachment = find_attachment(attachments, get_thumbnail_id(item))
    if attachment is not None:
        return get_attachment_url(attachment)
    meta_url = find_meta_value(item, "wp:attachment_url")
    if meta_url is not None:
        return meta_url.strip()
    return get_attachment_url(item)


###############################################################################
# Taxonomies
###############################################################################

def get_terms(item: Branch, domain: str) -> List[str]:
    """Return the ``<category>`` terms of ``domain`` in document order."""
    terms: List[str] = []
    for category in iter_nodes(child(item, "category")):
        if attribute(category, "domain") != domain:
            continue
        text = resolve_text(category).strip()
        if text:
            terms.append(text)
    return terms


###############################################################################
# Normalisation
###############################################################################

def to_epoch_seconds(date_text: str) -> int:
    """Convert a publish date to whole seconds since the epoch.

    RFC 2822 dates (``pubDate``) are expected; ISO 8601 is accepted as a
    fallback.  Dates without a timezone are taken as UTC.  Anything
    unparseable gives ``0``, and so does the WordPress zero date.
    """
    text = (date_text or "").strip()
    if not text:
        return 0
    if _NEGATIVE_YEAR_RE.search(text):
        return 0
    parsed: Optional[datetime] = None
    try:
        parsed = parsedate_to_datetime(text)
    except (TypeError, ValueError, IndexError):
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return 0
    if parsed is None:
        return 0
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return math.floor(parsed.timestamp())


def split_items_by_type(items: Iterable[Branch]) -> Tuple[List[Branch], List[Branch]]:
    """Split items into ``(projects, attachments)``; other post types are dropped."""
    projects: List[Branch] = []
    attachments: List[Branch] = []
    for item in items:
        post_type = get_post_type(item)
        if post_type == PROJECT_POST_TYPE:
            projects.append(item)
        elif post_type == ATTACHMENT_POST_TYPE:
            attachments.append(item)
    return projects, attachments


def build_blog_record(item: Branch, sites: SitesConfig) -> Optional[BlogRecord]:
    """Build a :class:`BlogRecord`, or ``None`` when the body is empty."""
    body = convert_html_to_markdown(get_content_html(item))
    if is_blank(body):
        return None
    slug = get_slug(item)
    return BlogRecord(
        id=get_post_id(item),
        title=get_title(item),
        slug=slug,
        body=body,
        published_at=get_publish_date(item),
        author_name=get_author_name(item),
        author_url=get_author_url(item),
        is_public=get_status(item) == "publish",
        sites_published_on=get_terms(item, SITE_DOMAIN),
        old_site_url=get_link(item),
        staging_site_url=sites.staging_blog_url(slug) if slug else "",
    )


def build_project_record(
    item: Branch, attachments: Sequence[Branch], sites: SitesConfig
) -> Optional[ProjectRecord]:
    """Build a :class:`ProjectRecord`, or ``None`` when the body is empty.

    Only the first ``project_collection`` term becomes the course.
    """
    body = convert_html_to_markdown(get_content_html(item))
    if is_blank(body):
        return None
    courses = get_terms(item, COURSE_DOMAIN)
    return ProjectRecord(
        id=get_post_id(item),
        title=get_title(item),
        slug=get_slug(item),
        body=body,
        author_name=get_author_name(item),
        author_url=get_author_url(item),
        cover_image_src=get_cover_image(item, attachments),
        published_at=to_epoch_seconds(get_publish_date(item)),
        publication_status=get_status(item),
        course=courses[0] if courses else "",
        tag=get_terms(item, TAG_DOMAIN),
        ai_rewritten_body="",
    )


def normalize_blogs(
    items: Iterable[Branch], sites: SitesConfig, report: Optional[RunReport] = None
) -> List[BlogRecord]:
    """Turn export items into blog records, preserving document order.

    Every item is a candidate whatever its post type; items whose body
    converts to nothing (attachments, menu items...) are skipped.
    """
    records: List[BlogRecord] = []
    for item in items:
        record = build_blog_record(item, sites)
        if record is None:
            logger.debug("Skipping blog '%s': empty body", get_title(item))
            if report is not None:
                report.add_skipped(get_post_id(item), get_title(item), "empty body")
            continue
        records.append(record)
    return records


def normalize_projects(
    items: Iterable[Branch], sites: SitesConfig, report: Optional[RunReport] = None
) -> List[ProjectRecord]:
    """Turn export items into project records, preserving document order.

    Attachment items in the same export are used to resolve cover images.
    """
    projects, attachments = split_items_by_type(items)
    logger.info("Found %d project items and %d attachments", len(projects), len(attachments))
    records: List[ProjectRecord] = []
    for item in projects:
        record = build_project_record(item, attachments, sites)
        if record is None:
            logger.debug("Skipping project '%s': empty body", get_title(item))
            if report is not None:
                report.add_skipped(get_post_id(item), get_title(item), "empty body")
            continue
        records.append(record)
    return records
