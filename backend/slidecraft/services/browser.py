"""
Headless Chromium rendering surface (Playwright async API).

One surface = one browser + one page, reused for every capture of an
export attempt and closed at the end of it. Crashes of the automation
channel surface as TransientRenderError so the orchestrator can retry
the whole batch.
"""

import logging
import re
from typing import Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from slidecraft.config import get_settings
from slidecraft.renderer.geometry import FrameMapping
from slidecraft.services.errors import ExportError, TransientRenderError

logger = logging.getLogger(__name__)

TRANSIENT_PATTERNS = re.compile(
    r"target (page, context or browser )?(has been |is )?closed"
    r"|page (has been |is )?closed"
    r"|context (has been |is )?closed"
    r"|browser (has been |is )?closed"
    r"|browser has disconnected"
    r"|protocol error"
    r"|connection closed"
    r"|channel closed"
    r"|navigation failed because page crashed"
    r"|page crashed",
    re.IGNORECASE,
)

# Resolves once web fonts are loaded and every <img> has decoded (or failed)
LAYOUT_READY_JS = """
async () => {
  if (document.fonts && document.fonts.ready) { await document.fonts.ready; }
  await Promise.all(Array.from(document.images).map(img => img.decode().catch(() => null)));
  return true;
}
"""

CHROMIUM_ARGS = ["--no-sandbox", "--disable-dev-shm-usage", "--disable-gpu", "--font-render-hinting=none"]


def is_transient_error(error: BaseException) -> bool:
    """Known crash signatures of the automation channel."""
    return bool(TRANSIENT_PATTERNS.search(str(error)))


class PlaywrightSurface:
    def __init__(self, playwright, browser, page):
        self._playwright = playwright
        self._browser = browser
        self._page = page
        self.settings = get_settings()

    @classmethod
    async def launch(cls) -> "PlaywrightSurface":
        playwright = await async_playwright().start()
        try:
            browser = await playwright.chromium.launch(args=CHROMIUM_ARGS)
            page = await browser.new_page(device_scale_factor=1)
        except PlaywrightError as e:
            await playwright.stop()
            if is_transient_error(e):
                raise TransientRenderError(str(e)) from e
            raise ExportError(f"Could not start the renderer: {e}") from e
        logger.info("Chromium surface launched")
        return cls(playwright, browser, page)

    async def capture(self, html: str, frame: FrameMapping, transparent: bool = False) -> bytes:
        """Load a slide document and screenshot it at the frame's exact size (PNG)."""
        page = self._page
        try:
            await page.set_viewport_size({"width": frame.frame_w, "height": frame.frame_h})
            await page.set_content(html, wait_until="load", timeout=self.settings.render_content_timeout_ms)
            await page.wait_for_selector(".slide-wrap", timeout=self.settings.render_selector_timeout_ms)
            await page.evaluate(LAYOUT_READY_JS)
            if self.settings.render_settle_ms > 0:
                await page.wait_for_timeout(self.settings.render_settle_ms)
            return await page.screenshot(
                type="png",
                omit_background=transparent,
                clip={"x": 0, "y": 0, "width": frame.frame_w, "height": frame.frame_h},
            )
        except PlaywrightError as e:
            if is_transient_error(e):
                raise TransientRenderError(str(e)) from e
            raise ExportError(f"Rendering failed: {e}") from e

    async def close(self):
        for closer in (self._browser.close, self._playwright.stop):
            try:
                await closer()
            except PlaywrightError as e:
                logger.debug("Ignoring error while closing surface: %s", e)


async def launch_surface(_attempt: Optional[int] = None) -> PlaywrightSurface:
    return await PlaywrightSurface.launch()
