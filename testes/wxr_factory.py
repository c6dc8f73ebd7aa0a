"""Small builders for WordPress WXR documents used across the tests."""

from typing import Dict, Iterable, Optional, Tuple

NAMESPACES = (
    'xmlns:excerpt="http://wordpress.org/export/1.2/excerpt/" '
    'xmlns:content="http://purl.org/rss/1.0/modules/content/" '
    'xmlns:wfw="http://wellformedweb.org/CommentAPI/" '
    'xmlns:dc="http://purl.org/dc/elements/1.1/" '
    'xmlns:wp="http://wordpress.org/export/1.2/"'
)


def wxr(*items: str) -> str:
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f'<rss version="2.0" {NAMESPACES}>'
        "<channel><title>BlueDot</title><link>https://cms.bluedot.org</link>"
        + "".join(items)
        + "</channel></rss>"
    )


def item(
    title: str = "Hello world",
    slug: str = "hello-world",
    post_id: str = "1",
    status: str = "publish",
    post_type: Optional[str] = "post",
    body: str = "<p>Body</p>",
    creator: str = "admin",
    pub_date: str = "Mon, 01 Jan 2024 12:00:00 +0000",
    link: str = "",
    meta: Optional[Dict[str, str]] = None,
    categories: Iterable[Tuple[str, str]] = (),
    attachment_url: Optional[str] = None,
) -> str:
    parts = [
        f"<title>{title}</title>",
        f"<link>{link}</link>",
        f"<pubDate>{pub_date}</pubDate>",
        f"<dc:creator><![CDATA[{creator}]]></dc:creator>",
        f"<content:encoded><![CDATA[{body}]]></content:encoded>",
        f"<wp:post_id>{post_id}</wp:post_id>",
        f"<wp:post_name><![CDATA[{slug}]]></wp:post_name>",
        f"<wp:status><![CDATA[{status}]]></wp:status>",
    ]
    if post_type is not None:
        parts.append(f"<wp:post_type><![CDATA[{post_type}]]></wp:post_type>")
    if attachment_url is not None:
        parts.append(f"<wp:attachment_url><![CDATA[{attachment_url}]]></wp:attachment_url>")
    for domain, text in categories:
        nicename = text.lower().replace(" ", "-")
        parts.append(f'<category domain="{domain}" nicename="{nicename}"><![CDATA[{text}]]></category>')
    for key, value in (meta or {}).items():
        parts.append(
            "<wp:postmeta>"
            f"<wp:meta_key><![CDATA[{key}]]></wp:meta_key>"
            f"<wp:meta_value><![CDATA[{value}]]></wp:meta_value>"
            "</wp:postmeta>"
        )
    return "<item>" + "".join(parts) + "</item>"
