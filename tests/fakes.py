"""In-memory stand-in for HeadlessBrowser, keyed by exact selector strings."""

from __future__ import annotations

from typing import Callable, Dict, List, Optional, Tuple

from booking.targets import SCHEDULER, VEHICLE_POPUP

DATE_BUTTONS = f"{SCHEDULER} .dateMain button.date"
ACTIVE_DATE = f"{SCHEDULER} .dateMain button.date.active"
VEHICLE_ENTRIES = f"{VEHICLE_POPUP} .item-title"
VEHICLE_SEARCH = 'input[type="search"][placeholder="Search vehicle"]'


class FakeElement:
    def __init__(
        self,
        text: str = "",
        *,
        name: Optional[str] = None,
        visible: bool = True,
        fail_clicks: int = 0,
        on_click: Optional[Callable[[], None]] = None,
    ) -> None:
        self.text = text
        self.name = name or text
        self.visible = visible
        self.fail_clicks = fail_clicks
        self.on_click = on_click
        self.attempts = 0
        self.clicks = 0
        self.value = ""
        self.selected: Optional[str] = None

    def __repr__(self) -> str:
        return f"FakeElement({self.name!r})"


class FakeBrowser:
    def __init__(self) -> None:
        self.elements: Dict[str, List[FakeElement]] = {}
        self.actions: List[Tuple[str, str]] = []
        self.visited: List[str] = []
        self.screenshots: List[str] = []
        self.saved_states: List[str] = []
        self._vanish: Dict[str, int] = {}

    # Page setup

    def add(self, selector: str, *elements: FakeElement) -> List[FakeElement]:
        self.elements.setdefault(selector, []).extend(elements)
        return list(elements)

    def element(self, selector: str, text: str = "", **kwargs) -> FakeElement:
        return self.add(selector, FakeElement(text, **kwargs))[0]

    def remove(self, selector: str) -> None:
        self.elements.pop(selector, None)

    def vanish_after(self, selector: str, queries: int) -> None:
        """Keep ``selector`` matching for ``queries`` more lookups, then drop it."""
        self._vanish[selector] = queries

    def clicked(self) -> List[str]:
        return [name for kind, name in self.actions if kind == "click"]

    # HeadlessBrowser surface

    async def goto(self, url: str) -> str:
        self.visited.append(url)
        return url

    async def query_all(self, selector: str) -> List[FakeElement]:
        remaining = self._vanish.get(selector)
        if remaining is not None:
            if remaining <= 0:
                del self._vanish[selector]
                self.remove(selector)
            else:
                self._vanish[selector] = remaining - 1
        return list(self.elements.get(selector, []))

    async def text_of(self, element: FakeElement) -> str:
        return element.text.strip()

    async def wait_until_visible(self, element: FakeElement, timeout_ms: int) -> None:
        if not element.visible:
            raise TimeoutError(f"{element.name} not visible after {timeout_ms}ms")

    async def click(self, element: FakeElement) -> None:
        element.attempts += 1
        if element.fail_clicks > 0:
            element.fail_clicks -= 1
            raise RuntimeError(f"click on {element.name} intercepted")
        element.clicks += 1
        self.actions.append(("click", element.name))
        if element.on_click is not None:
            element.on_click()

    async def clear(self, element: FakeElement) -> None:
        element.value = ""
        self.actions.append(("clear", element.name))

    async def type(self, element: FakeElement, text: str) -> None:
        element.value += text
        self.actions.append(("type", element.name))

    async def select(self, element: FakeElement, value: str) -> None:
        element.selected = value
        self.actions.append(("select", element.name))

    async def screenshot(self, label: str) -> Optional[str]:
        self.screenshots.append(label)
        return f"screenshots/{label}.png"

    async def save_storage_state(self, path: str) -> None:
        self.saved_states.append(str(path))


def add_vehicle_selector(browser: FakeBrowser, vehicles: Tuple[str, ...]) -> None:
    """Signed-in vehicle widget: selector, popup, search box, entries and the add-vehicle form."""
    browser.element("#selectVehicleSmartSelect", name="vehicle_selector")
    browser.element(".smartSelectCustom .item-link.smart-select", name="vehicle_link")
    browser.element(VEHICLE_POPUP, name="vehicle_popup")
    browser.element(VEHICLE_SEARCH, name="vehicle_search")

    def close_popup() -> None:
        browser.remove(VEHICLE_POPUP)

    for title in vehicles:
        browser.element(VEHICLE_ENTRIES, title, name=f"vehicle:{title}", on_click=close_popup)

    browser.element("#licencePlateTxt", name="plate")
    browser.element("#stateSelect select", name="province")
    browser.element("#colourSelect select", name="colour")
    browser.element("#makeModelSelect select", name="make")
    browser.element("#vehicleModelTxt", name="model")
    browser.element(".themeBtn.button.button-round", "Save", name="save_vehicle")


def build_portal(
    browser: FakeBrowser,
    *,
    signed_in: bool = True,
    info_popup: bool = True,
    cards: Tuple[str, ...] = ("Half Day Pass $10", "All Day Pass $15"),
    dates: Tuple[str, ...] = ("16", "17", "18"),
    active: Optional[str] = None,
    sold_out: bool = False,
    vehicles: Tuple[str, ...] = ("Select...", "Tesla Model Y ABC123"),
    otp: str = "completed",
) -> FakeBrowser:
    """
    Lay out the Buntzen Lake portal in ``browser``.

    ``otp`` picks how the verification step looks once Next is clicked:
    ``"completed"`` shows code inputs that are not pending, ``"pending"``
    shows inputs that never clear.
    """
    if info_popup:
        browser.element("#informationPopup", name="info_popup")
        browser.element(
            "a",
            "Go To Passes",
            name="go_to_passes",
            on_click=lambda: browser.remove("#informationPopup"),
        )

    for card in cards:
        browser.element(".cardRow .gridCard", card)
    for day in dates:
        browser.element(DATE_BUTTONS, day, name=f"date:{day}")
    if active is not None:
        browser.element(ACTIVE_DATE, active, name=f"active:{active}")
    if sold_out:
        browser.element(".soldout", "Sold Out")
    browser.element(".themeBtn.btn-disbled.button.button-round", "Add to Cart", name="add_to_cart")
    browser.element("#checkOutButton", "Checkout", name="checkout")

    if signed_in:
        add_vehicle_selector(browser, vehicles)
        return browser

    def show_code_inputs() -> None:
        selector = 'input[type="tel"]' if otp == "completed" else ".otpFocusInput"
        for digit in range(4):
            browser.element(selector, name=f"otp:{digit}")

    def finish_login() -> None:
        browser.remove(".signinModel")
        add_vehicle_selector(browser, vehicles)

    browser.element(".signinModel", name="login_form")
    browser.element("#txtPhonenumber", name="phone")
    browser.element("a, button", "Next", name="next", on_click=show_code_inputs)
    browser.element(".themeBtn.btn-disbled.button", "Submit", name="otp_submit", on_click=finish_login)
    return browser
