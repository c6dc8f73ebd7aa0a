import os
import sys

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import pytest
pytest.importorskip("playwright")

from cms_migrator.config import MigrationSettings
from cms_migrator.services import renderer as renderer_module
from cms_migrator.services.renderer import PlaywrightRenderer, RenderResult


class FakeElement:
    def __init__(self, html):
        self.html = html

    def evaluate(self, script):
        return self.html


class FakePage:
    def __init__(self, elements, fail=False):
        self.elements = elements
        self.fail = fail
        self.waited = []

    def set_default_navigation_timeout(self, ms):
        self.timeout = ms

    def goto(self, url, wait_until=None):
        if self.fail:
            raise renderer_module.PlaywrightError("net::ERR_NAME_NOT_RESOLVED")
        self.wait_until = wait_until

    def wait_for_timeout(self, ms):
        self.waited.append(ms)

    def screenshot(self, full_page=False):
        return b"png"

    def query_selector(self, selector):
        html = self.elements.get(selector)
        return FakeElement(html) if html is not None else None

    def content(self):
        return "<html>whole</html>"


class FakeBrowser:
    def __init__(self, page):
        self.page = page
        self.closed = False

    def new_page(self, viewport=None):
        return self.page

    def close(self):
        self.closed = True


class FakePlaywright:
    def __init__(self, browser):
        self.chromium = self
        self.browser = browser

    def launch(self, headless=True, args=None):
        return self.browser

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


def _renderer(monkeypatch, page):
    browser = FakeBrowser(page)
    monkeypatch.setattr(renderer_module, "sync_playwright", lambda: FakePlaywright(browser))
    return PlaywrightRenderer(MigrationSettings(render_settle_ms=250)), browser


def test_empty_url_renders_nothing():
    renderer = PlaywrightRenderer(MigrationSettings())
    assert renderer.render("", [".content"]) == RenderResult()


def test_first_matching_selector_wins(monkeypatch):
    page = FakePage({".b": "<div class='b'>B</div>", ".c": "<div class='c'>C</div>"})
    renderer, browser = _renderer(monkeypatch, page)

    result = renderer.render("https://x", [".a", ".b", ".c"], screenshot=True)

    assert result.html == "<div class='b'>B</div>"
    assert result.screenshot == b"png"
    assert page.wait_until == "networkidle"
    assert page.waited == [250]
    assert browser.closed


def test_no_match_falls_back_to_document_unless_disabled(monkeypatch):
    renderer, _ = _renderer(monkeypatch, FakePage({}))
    assert renderer.render("https://x", [".a"]).html == "<html>whole</html>"
    assert renderer.render("https://x", [".a"], fallback_to_document=False).html == ""


def test_navigation_error_gives_empty_result_and_closes_browser(monkeypatch):
    renderer, browser = _renderer(monkeypatch, FakePage({}, fail=True))
    assert renderer.render("https://x", [".a"]) == RenderResult()
    assert browser.closed
