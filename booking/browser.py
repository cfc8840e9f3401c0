from __future__ import annotations

import asyncio
import logging
from contextlib import AbstractAsyncContextManager
from datetime import datetime
from pathlib import Path
from typing import Any, List, Optional

from playwright.async_api import (
    Browser,
    BrowserContext,
    ElementHandle,
    Error as PlaywrightError,
    Page,
    Playwright,
    async_playwright,
)

from .errors import NavigationError

logger = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)
VIEWPORT = {"width": 1366, "height": 768}
LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--no-first-run",
    "--disable-gpu",
]


class HeadlessBrowser(AbstractAsyncContextManager["HeadlessBrowser"]):
    """Manage one Chromium page for the duration of a booking run."""

    def __init__(
        self,
        *,
        headless: bool = True,
        timeout: float = 30.0,
        storage_state: Optional[str | dict] = None,
        screenshot_dir: str | Path = "screenshots",
    ) -> None:
        self._headless = headless
        self._timeout = timeout
        self._storage_state = storage_state
        self._screenshot_dir = Path(screenshot_dir)
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None
        self._lock = asyncio.Lock()

    async def __aenter__(self) -> "HeadlessBrowser":
        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self._headless,
                args=LAUNCH_ARGS,
            )
            self._context = await self._browser.new_context(
                ignore_https_errors=True,
                storage_state=self._storage_state,
                user_agent=USER_AGENT,
                viewport=VIEWPORT,
            )
            self._page = await self._context.new_page()
            self._page.set_default_timeout(self._timeout * 1000)
        except BaseException:
            await self.close()
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # type: ignore[override]
        await self.close()

    @property
    def page(self) -> Page:
        if self._page is None:
            raise RuntimeError("Browser page is not initialized yet.")
        return self._page

    async def close(self) -> None:
        """Close page, context and browser gracefully."""
        async with self._lock:
            if self._page is not None:
                await self._page.close()
                self._page = None
            if self._context is not None:
                await self._context.close()
                self._context = None
            if self._browser is not None:
                await self._browser.close()
                self._browser = None
            if self._playwright is not None:
                await self._playwright.stop()
                self._playwright = None
        logger.debug("Browser closed")

    async def goto(self, url: str) -> str:
        """
        Navigate to a specified URL and wait until the network is idle.

        Returns the final URL the browser ends up at (after potential redirects).
        """
        page = self.page
        try:
            await page.goto(url, wait_until="commit")
            await page.wait_for_load_state("networkidle")
        except PlaywrightError as exc:
            raise NavigationError(f"Could not open {url}: {exc}") from exc
        return page.url

    async def query_all(self, selector: str) -> List[ElementHandle]:
        return await self.page.query_selector_all(selector)

    async def evaluate(self, expression: str, element: Optional[ElementHandle] = None) -> Any:
        if element is not None:
            return await element.evaluate(expression)
        return await self.page.evaluate(expression)

    async def text_of(self, element: ElementHandle) -> str:
        text = await self.evaluate("el => el.textContent || ''", element)
        return (text or "").strip()

    async def wait_until_visible(self, element: ElementHandle, timeout_ms: int) -> None:
        await element.wait_for_element_state("visible", timeout=timeout_ms)

    async def click(self, element: ElementHandle) -> None:
        await element.scroll_into_view_if_needed()
        await element.click()

    async def clear(self, element: ElementHandle) -> None:
        await element.fill("")

    async def type(self, element: ElementHandle, text: str) -> None:
        await element.type(text)

    async def select(self, element: ElementHandle, value: str) -> None:
        await element.select_option(value=value)

    async def screenshot(self, label: str) -> Optional[str]:
        """Save a full-page screenshot. Failures are logged, never raised."""
        timestamp = datetime.now().strftime("%Y-%m-%dT%H-%M-%S-%f")
        path = self._screenshot_dir / f"{label}_{timestamp}.png"
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            await self.page.screenshot(path=str(path), full_page=True)
        except (PlaywrightError, OSError, RuntimeError) as exc:
            logger.warning("Failed to take screenshot %s: %s", label, exc)
            return None
        logger.info("Screenshot saved: %s", path)
        return str(path)

    async def save_storage_state(self, path: str | Path) -> None:
        if self._context is None:
            raise RuntimeError("Browser context is not initialized yet.")
        await self._context.storage_state(path=str(path))
