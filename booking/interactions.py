from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Optional

from playwright.async_api import ElementHandle

from .errors import BookingAutomationError, InteractionError
from .locator import ElementLocator

if TYPE_CHECKING:
    from .browser import HeadlessBrowser

logger = logging.getLogger(__name__)


class Interactions:
    """
    Click, fill and select against the page with bounded waits.

    Targets are resolved through the locator unless an element is passed in.
    A target that cannot be found fails straight away with ElementNotFound;
    only clicks on elements that exist are retried.
    """

    def __init__(
        self,
        browser: "HeadlessBrowser",
        locator: ElementLocator,
        *,
        action_delay_ms: int = 100,
        click_attempts: int = 3,
        retry_delay_ms: int = 1_000,
        visible_timeout_ms: int = 10_000,
    ) -> None:
        if click_attempts < 1:
            raise ValueError("click_attempts must be at least 1")
        self._browser = browser
        self._locator = locator
        self._action_delay = action_delay_ms / 1000
        self._click_attempts = click_attempts
        self._retry_delay = retry_delay_ms / 1000
        self._visible_timeout_ms = visible_timeout_ms

    async def click(
        self,
        target: str,
        *,
        element: Optional[ElementHandle] = None,
        **params: str,
    ) -> None:
        if element is None:
            element = await self._locator.resolve(target, **params)

        last_error: Optional[BaseException] = None
        for attempt in range(1, self._click_attempts + 1):
            try:
                await self._browser.wait_until_visible(element, self._visible_timeout_ms)
                await self._browser.click(element)
            except Exception as exc:
                last_error = exc
                logger.warning(
                    "Click attempt %d/%d failed for %s: %s",
                    attempt,
                    self._click_attempts,
                    target,
                    exc,
                )
                if attempt < self._click_attempts:
                    await asyncio.sleep(self._retry_delay)
                continue
            logger.debug("Clicked %s", target)
            await self.pause()
            return

        raise InteractionError(target, last_error) from last_error

    async def fill(
        self,
        target: str,
        value: str,
        *,
        element: Optional[ElementHandle] = None,
        **params: str,
    ) -> None:
        if element is None:
            element = await self._locator.resolve(target, **params)
        try:
            await self._browser.wait_until_visible(element, self._visible_timeout_ms)
            await self._browser.clear(element)
            await self._browser.type(element, value)
        except BookingAutomationError:
            raise
        except Exception as exc:
            raise InteractionError(target, exc) from exc
        logger.debug("Filled %s", target)
        await self.pause()

    async def select(
        self,
        target: str,
        value: str,
        *,
        element: Optional[ElementHandle] = None,
        **params: str,
    ) -> None:
        if element is None:
            element = await self._locator.resolve(target, **params)
        try:
            await self._browser.wait_until_visible(element, self._visible_timeout_ms)
            await self._browser.select(element, value)
        except BookingAutomationError:
            raise
        except Exception as exc:
            raise InteractionError(target, exc) from exc
        logger.debug("Selected %s in %s", value, target)
        await self.pause()

    async def read_text(self, element: ElementHandle) -> str:
        return await self._browser.text_of(element)

    async def pause(self) -> None:
        if self._action_delay > 0:
            await asyncio.sleep(self._action_delay)
