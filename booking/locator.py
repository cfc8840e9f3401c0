from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import TYPE_CHECKING, Dict, List, Mapping, Optional, Sequence, Tuple

from playwright.async_api import ElementHandle

from .checkpoint import poll_until
from .errors import ElementNotFound

if TYPE_CHECKING:
    from .browser import HeadlessBrowser


class StrategyKind(Enum):
    ATTRIBUTE = "attribute"
    TEXT = "text"
    FUZZY_TEXT = "fuzzy_text"


@dataclass(frozen=True, slots=True)
class LocatorStrategy:
    """
    One way of finding a semantic target on the page.

    ATTRIBUTE strategies use ``target`` as a CSS selector. TEXT and FUZZY_TEXT
    strategies look at the elements matched by ``scope`` and keep those whose
    trimmed text equals ``target`` (TEXT) or contains it ignoring case
    (FUZZY_TEXT). ``contains`` narrows any strategy to elements whose text
    contains that substring; ``min_count`` makes a strategy count only when at
    least that many elements match.
    """

    kind: StrategyKind
    target: str
    scope: str = "a, button"
    contains: Optional[str] = None
    min_count: int = 1

    def bind(self, **params: str) -> "LocatorStrategy":
        if not params:
            return self
        return replace(
            self,
            target=self.target.format(**params),
            contains=self.contains.format(**params) if self.contains else None,
        )

    def describe(self) -> str:
        if self.kind is StrategyKind.ATTRIBUTE:
            label = self.target
        else:
            label = f"{self.scope} [{self.kind.value}={self.target!r}]"
        if self.contains:
            label += f" containing {self.contains!r}"
        return label


def css(selector: str, *, contains: Optional[str] = None, min_count: int = 1) -> LocatorStrategy:
    return LocatorStrategy(StrategyKind.ATTRIBUTE, selector, contains=contains, min_count=min_count)


def text(value: str, *, scope: str = "a, button") -> LocatorStrategy:
    return LocatorStrategy(StrategyKind.TEXT, value, scope=scope)


def fuzzy(value: str, *, scope: str = "a, button") -> LocatorStrategy:
    return LocatorStrategy(StrategyKind.FUZZY_TEXT, value, scope=scope)


class ElementLocator:
    """Resolve semantic targets to page elements using ordered strategies. Read-only."""

    def __init__(
        self,
        browser: "HeadlessBrowser",
        targets: Mapping[str, Sequence[LocatorStrategy]],
    ) -> None:
        self._browser = browser
        self._targets: Dict[str, Tuple[LocatorStrategy, ...]] = {
            name: tuple(strategies) for name, strategies in targets.items()
        }

    def strategies(self, target: str) -> Tuple[LocatorStrategy, ...]:
        try:
            return self._targets[target]
        except KeyError:
            raise KeyError(f"Unknown locator target: {target}") from None

    async def resolve_all(self, target: str, **params: str) -> List[ElementHandle]:
        """Return every match of the first strategy that matches anything."""
        tried = []
        for strategy in self.strategies(target):
            bound = strategy.bind(**params)
            matches = await self._matches(bound)
            if matches:
                return matches
            tried.append(bound.describe())
        raise ElementNotFound(target, f"Element not found: {target} (tried {'; '.join(tried)})")

    async def resolve(self, target: str, **params: str) -> ElementHandle:
        matches = await self.resolve_all(target, **params)
        return matches[0]

    async def find(self, target: str, **params: str) -> Optional[ElementHandle]:
        try:
            return await self.resolve(target, **params)
        except ElementNotFound:
            return None

    async def exists(self, target: str, **params: str) -> bool:
        return await self.find(target, **params) is not None

    async def wait_for(
        self,
        target: str,
        *,
        timeout_ms: int,
        interval_ms: int = 500,
        **params: str,
    ) -> bool:
        """Poll until the target is present. Returns False on timeout instead of raising."""

        async def present() -> bool:
            return await self.exists(target, **params)

        return await poll_until(present, timeout_ms=timeout_ms, interval_ms=interval_ms)

    async def _matches(self, strategy: LocatorStrategy) -> List[ElementHandle]:
        if strategy.kind is StrategyKind.ATTRIBUTE:
            candidates = await self._browser.query_all(strategy.target)
        else:
            candidates = [
                element
                for element in await self._browser.query_all(strategy.scope)
                if await self._text_matches(element, strategy)
            ]

        if strategy.contains:
            needle = strategy.contains.lower()
            candidates = [
                element
                for element in candidates
                if needle in (await self._browser.text_of(element)).lower()
            ]

        if len(candidates) < max(strategy.min_count, 1):
            return []
        return candidates

    async def _text_matches(self, element: ElementHandle, strategy: LocatorStrategy) -> bool:
        content = await self._browser.text_of(element)
        if strategy.kind is StrategyKind.TEXT:
            return content == strategy.target.strip()
        return strategy.target.lower() in content.lower()
