"""
Headless browser rendering of old and new site pages.

Both the repair and the rendering check need the HTML a visitor actually
sees, after client-side JavaScript has run.  :class:`PlaywrightRenderer`
launches a fresh headless Chromium for every page, waits for the network
to go idle plus a fixed settle delay, and returns the outer HTML of the
first content selector that matches.  The browser is always closed, even
when navigation fails.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from ..config import MigrationSettings

logger = logging.getLogger(__name__)

VIEWPORT = {"width": 1280, "height": 1024}


@dataclass
class RenderResult:
    html: str = ""
    screenshot: Optional[bytes] = None


class PlaywrightRenderer:
    def __init__(self, settings: MigrationSettings) -> None:
        self.settle_ms = settings.render_settle_ms
        self.navigation_timeout_ms = settings.navigation_timeout_ms

    def render(
        self,
        url: str,
        selectors: Sequence[str],
        fallback_to_document: bool = True,
        screenshot: bool = False,
    ) -> RenderResult:
        """Render ``url`` and extract its content.

        Returns the outer HTML of the first selector in ``selectors`` found
        on the page.  When none matches, the whole document is returned if
        ``fallback_to_document`` is set, otherwise an empty string.  A
        navigation or browser error yields an empty :class:`RenderResult`.
        """
        if not url:
            logger.warning("No URL provided for rendering")
            return RenderResult()

        logger.info("Rendering URL: %s", url)
        try:
            with sync_playwright() as p:
                browser = p.chromium.launch(headless=True, args=["--no-sandbox"])
                try:
                    page = browser.new_page(viewport=VIEWPORT)
                    page.set_default_navigation_timeout(self.navigation_timeout_ms)
                    page.goto(url, wait_until="networkidle")
                    page.wait_for_timeout(self.settle_ms)

                    shot = page.screenshot(full_page=True) if screenshot else None

                    html = ""
                    for selector in selectors:
                        element = page.query_selector(selector)
                        if element is not None:
                            html = element.evaluate("el => el.outerHTML")
                            break
                    else:
                        if fallback_to_document:
                            logger.debug("No content selector matched on %s, using the whole document", url)
                            html = page.content()
                    return RenderResult(html=html, screenshot=shot)
                finally:
                    browser.close()
        except PlaywrightError as e:
            logger.error("Error rendering URL %s: %s", url, e)
            return RenderResult()
