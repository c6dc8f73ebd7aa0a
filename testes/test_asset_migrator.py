import os
import sys

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from cms_migrator.config import StorageConfig
from cms_migrator.exceptions import AssetError
from cms_migrator.migrators.asset_migrator import (
    extension_for,
    find_old_cms_urls,
    guess_content_type,
    replace_old_cms_urls,
)

PATTERN = StorageConfig().old_asset_url_pattern


def test_find_old_cms_urls_unique_in_order():
    text = (
        '<Embed url="https://cms.bluedot.org/u/b.png" /> and '
        "[doc](http://cms.bluedot.org/u/a.pdf) and https://cms.bluedot.org/u/b.png "
        "and https://example.com/u/c.png"
    )
    assert find_old_cms_urls(text, PATTERN) == [
        "https://cms.bluedot.org/u/b.png",
        "http://cms.bluedot.org/u/a.pdf",
    ]


def test_guess_content_type():
    assert guess_content_type("https://cms.bluedot.org/u/photo.JPG") == "image/jpeg"
    assert guess_content_type("https://cms.bluedot.org/u/file.svg?ver=2") == "image/svg+xml"
    assert guess_content_type("https://cms.bluedot.org/u/report.docx").endswith("wordprocessingml.document")
    assert guess_content_type("https://cms.bluedot.org/u/archive.zip") == "application/octet-stream"


def test_extension_for():
    assert extension_for("image/png") == ".png"
    assert extension_for("image/jpeg") == ".jpg"
    assert extension_for("application/pdf") == ".pdf"
    assert extension_for("application/octet-stream") == ""


def test_replace_old_cms_urls_rewrites_every_occurrence():
    text = "![](https://cms.bluedot.org/u/a.png) again https://cms.bluedot.org/u/a.png"
    downloads, uploads = [], []

    def download(url):
        downloads.append(url)
        return b"bytes"

    def upload(data, content_type):
        uploads.append((data, content_type))
        return "https://storage.k8s.bluedot.org/website-assets/migrated/1.png"

    updated, url_map = replace_old_cms_urls(text, download, upload, PATTERN)

    assert downloads == ["https://cms.bluedot.org/u/a.png"]
    assert uploads == [(b"bytes", "image/png")]
    assert "cms.bluedot.org" not in updated
    assert updated.count("https://storage.k8s.bluedot.org/website-assets/migrated/1.png") == 2
    assert url_map == {"https://cms.bluedot.org/u/a.png": "https://storage.k8s.bluedot.org/website-assets/migrated/1.png"}


def test_failed_url_is_left_in_place():
    text = "https://cms.bluedot.org/u/broken.png https://cms.bluedot.org/u/ok.png"

    def download(url):
        if "broken" in url:
            raise AssetError("404")
        return b"ok"

    updated, url_map = replace_old_cms_urls(text, download, lambda data, ct: "https://new/ok.png", PATTERN)

    assert updated == "https://cms.bluedot.org/u/broken.png https://new/ok.png"
    assert list(url_map) == ["https://cms.bluedot.org/u/ok.png"]


def test_text_without_old_urls_is_unchanged():
    updated, url_map = replace_old_cms_urls("nothing here", None, None, PATTERN)
    assert updated == "nothing here"
    assert url_map == {}
