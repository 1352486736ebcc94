"""
Browser Manager - Owns the Playwright browser and page of one check run

The manager is an async context manager: entering launches the browser,
leaving closes it exactly once, whatever happened in between.
"""
import json
from typing import Callable, Optional

from loguru import logger
from playwright.async_api import Browser, BrowserContext, Page, async_playwright

from ..app.config import Settings, settings as default_settings
from ..app.exceptions import LaunchFailure, PageCreationFailure


# navigator.webdriver is the first thing bot checks look at
WEBDRIVER_SCRIPT = """
Object.defineProperty(navigator, 'webdriver', {
    get: () => false
});
"""

# Headful Chrome exposes window.chrome; automated Chromium does not
CHROME_RUNTIME_SCRIPT = """
window.chrome = {
    runtime: {},
};
"""

# Only the length is checked
PLUGINS_SCRIPT = """
Object.defineProperty(navigator, 'plugins', {
    get: () => [1, 2, 3, 4, 5]
});
"""

LANGUAGES_SCRIPT = """
Object.defineProperty(navigator, 'languages', {
    get: () => %s
});
"""


class BrowserManager:
    """Manages browser lifecycle with fingerprint patches"""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        playwright_factory: Callable = async_playwright,
    ):
        self.settings = settings or default_settings
        self._playwright_factory = playwright_factory
        self._playwright = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None
        self._closed = False
        self.close_error: Optional[Exception] = None

    async def __aenter__(self) -> "BrowserManager":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    async def start(self) -> None:
        """Launch the browser process"""
        logger.info("Starting browser...")

        launch_options = {"headless": self.settings.headless}
        if self.settings.browser_executable_path:
            launch_options["executable_path"] = self.settings.browser_executable_path

        try:
            self._playwright = await self._playwright_factory().start()
            self._browser = await self._playwright.chromium.launch(**launch_options)
        except Exception as e:
            logger.error(f"Browser launch failed: {e}")
            await self._stop_playwright()
            raise LaunchFailure(str(e)) from e

        logger.info("Browser started")

    async def new_page(self) -> Page:
        """Open the session page with user agent, viewport and fingerprint patches"""
        if not self._browser:
            raise PageCreationFailure("Browser not started")

        try:
            self._context = await self._browser.new_context(
                user_agent=self.settings.user_agent,
                viewport={
                    "width": self.settings.viewport_width,
                    "height": self.settings.viewport_height,
                },
            )
            page = await self._context.new_page()
            if self.settings.default_timeout_ms is not None:
                page.set_default_timeout(self.settings.default_timeout_ms)
            page.on("console", lambda msg: logger.debug(f"PAGE LOG: {msg.text}"))
            await self._apply_stealth(page)
        except Exception as e:
            logger.error(f"Page creation failed: {e}")
            raise PageCreationFailure(str(e)) from e

        self._page = page
        return page

    async def _apply_stealth(self, page: Page) -> None:
        """Register the fingerprint patches for every document the page loads"""
        await page.add_init_script(WEBDRIVER_SCRIPT)
        await page.add_init_script(CHROME_RUNTIME_SCRIPT)
        await page.add_init_script(PLUGINS_SCRIPT)
        await page.add_init_script(LANGUAGES_SCRIPT % json.dumps(self.settings.browser_languages))

    async def screenshot(self) -> Optional[bytes]:
        """Full-page PNG of the current page, or None if it cannot be taken"""
        if not self._page:
            return None

        try:
            return await self._page.screenshot(full_page=True, type="png")
        except Exception as e:
            logger.error(f"Failed to take screenshot: {e}")
            return None

    async def stop(self) -> None:
        """Close the browser; later calls do nothing"""
        if self._closed:
            return
        self._closed = True
        logger.info("Stopping browser...")

        # Closing the browser closes its context and page
        try:
            if self._browser:
                await self._browser.close()
        except Exception as e:
            logger.error(f"Error closing browser: {e}")
            self.close_error = e
        finally:
            self._page = None
            self._context = None
            self._browser = None
            await self._stop_playwright()

        logger.info("Browser stopped")

    async def _stop_playwright(self) -> None:
        if self._playwright:
            try:
                await self._playwright.stop()
            except Exception as e:
                logger.warning(f"Playwright driver did not stop cleanly: {e}")
            self._playwright = None

    @property
    def page(self) -> Optional[Page]:
        """Get current page"""
        return self._page

    @property
    def closed(self) -> bool:
        return self._closed
