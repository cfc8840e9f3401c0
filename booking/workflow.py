from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable, List, Mapping, Optional, Sequence

from playwright.async_api import Error as PlaywrightError

from .browser import HeadlessBrowser
from .checkpoint import CheckpointOutcome, CheckpointPolicy, await_completion, poll_until
from .errors import (
    BookingAutomationError,
    CheckoutError,
    CheckpointTimeout,
    ElementNotFound,
    InteractionError,
    LoginError,
    SoldOut,
    VehicleResolutionError,
)
from .interactions import Interactions
from .locator import ElementLocator, LocatorStrategy
from .log import StepLogger, get_logger
from .models import PassRequest, PassType, VehicleProfile
from .session import BookingSession, BookingStage
from .targets import PLACEHOLDER_VEHICLES, TARGETS

logger = get_logger(__name__)

BASE_URL = "https://yodelportal.com/buntzen-lake"

Notify = Callable[[str], Awaitable[None]]


@dataclass(slots=True)
class BookingOptions:
    base_url: str = BASE_URL
    phone_number: str = ""
    headless: bool = True
    page_timeout: float = 30.0
    action_delay_ms: int = 100
    click_attempts: int = 3
    click_retry_delay_ms: int = 1_000
    element_timeout_ms: int = 10_000
    popup_timeout_ms: int = 3_000
    settle_timeout_ms: int = 10_000
    poll_interval_ms: int = 500
    checkpoint: CheckpointPolicy = field(default_factory=CheckpointPolicy)
    storage_state_path: Optional[str] = None
    screenshot_dir: str = "screenshots"
    notify: Optional[Notify] = None


@dataclass(slots=True)
class BookingResult:
    session: BookingSession
    error: Optional[BookingAutomationError] = None
    failed_stage: Optional[BookingStage] = None
    notices: List[str] = field(default_factory=list)
    screenshot: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.session.stage is BookingStage.CHECKOUT_COMPLETED

    @property
    def message(self) -> str:
        if self.ok:
            return "Parking pass booked and checked out."
        stage = self.failed_stage.label if self.failed_stage is not None else "unknown"
        return f"Booking failed (last completed stage: {stage}): {self.error}"


def choose_pass_card(card_texts: Sequence[str], pass_type: PassType) -> Optional[int]:
    """Index of the first card captioned with the requested pass type, if any."""
    for index, card_text in enumerate(card_texts):
        if any(label in card_text for label in pass_type.labels):
            return index
    return None


def is_placeholder_vehicle(title: str) -> bool:
    return not title.strip() or title.strip() in PLACEHOLDER_VEHICLES


def choose_vehicle(titles: Sequence[str], model: str) -> Optional[int]:
    """
    Pick the vehicle entry to click.

    Preference: model contained with matching case, then ignoring case, then
    the first real entry. Placeholder rows ("Select...", "Add a Vehicle") are
    never picked.
    """
    candidates = [
        (index, title.strip())
        for index, title in enumerate(titles)
        if not is_placeholder_vehicle(title)
    ]
    if model:
        for index, title in candidates:
            if model in title:
                return index
        lowered = model.lower()
        for index, title in candidates:
            if lowered in title.lower():
                return index
    if candidates:
        return candidates[0][0]
    return None


class BookingWorkflow:
    """
    Drive one booking run through the portal.

    The run is a small state machine over BookingStage. Each stage method
    takes the current BookingSession and returns the next one; any
    BookingAutomationError escaping a stage ends the run as FAILED.
    """

    def __init__(
        self,
        browser: HeadlessBrowser,
        options: Optional[BookingOptions] = None,
        *,
        targets: Mapping[str, Sequence[LocatorStrategy]] = TARGETS,
        logger: Optional[StepLogger] = None,
    ) -> None:
        self._browser = browser
        self._options = options or BookingOptions()
        self._locator = ElementLocator(browser, targets)
        self._ui = Interactions(
            browser,
            self._locator,
            action_delay_ms=self._options.action_delay_ms,
            click_attempts=self._options.click_attempts,
            retry_delay_ms=self._options.click_retry_delay_ms,
            visible_timeout_ms=self._options.element_timeout_ms,
        )
        self._log = logger or get_logger(__name__)

    async def run(self, request: PassRequest, vehicle: VehicleProfile) -> BookingResult:
        session = BookingSession()
        notices: List[str] = []
        self._log.step("Starting parking pass booking (%s)", request.pass_type.value)
        try:
            while not session.stage.terminal:
                session = await self._advance(session, request, vehicle, notices)
        except BookingAutomationError as exc:
            return await self._fail(session, exc, notices)
        except Exception as exc:
            wrapped = BookingAutomationError(f"Unexpected failure: {exc}")
            wrapped.__cause__ = exc
            return await self._fail(session, wrapped, notices)

        self._log.success("🎉 Parking pass booking completed successfully!")
        await self._announce("🎉 Buntzen Lake parking pass booked.")
        return BookingResult(session=session, notices=notices)

    async def _advance(
        self,
        session: BookingSession,
        request: PassRequest,
        vehicle: VehicleProfile,
        notices: List[str],
    ) -> BookingSession:
        stage = session.stage
        if stage is BookingStage.INIT:
            return await self._load_portal(session)
        if stage is BookingStage.PORTAL_LOADED:
            return await self._handle_info_popup(session)
        if stage is BookingStage.POPUP_HANDLED:
            return await self._select_pass(session, request)
        if stage is BookingStage.PASS_SELECTED:
            return await self._choose_branch(session)
        if stage is BookingStage.SIGNED_IN_BRANCH:
            return await self._signed_in_booking(session, request, vehicle)
        if stage is BookingStage.GUEST_BRANCH:
            return await self._guest_booking(session, request)
        if stage is BookingStage.CART_ADDED:
            if session.is_logged_in:
                return await self._checkout(session)
            return await self._login(session, notices)
        if stage is BookingStage.LOGIN_COMPLETED:
            return await self._post_login(session, request, vehicle)
        if stage is BookingStage.POST_LOGIN_VEHICLE_RESOLVED:
            return await self._checkout(session)
        raise BookingAutomationError(f"No transition out of {stage.name}")

    # Stages

    async def _load_portal(self, session: BookingSession) -> BookingSession:
        self._log.step("Navigating to portal %s", self._options.base_url)
        await self._browser.goto(self._options.base_url)
        await self._browser.screenshot("portal_loaded")
        self._log.success("Successfully navigated to portal")
        return session.advance(BookingStage.PORTAL_LOADED)

    async def _handle_info_popup(self, session: BookingSession) -> BookingSession:
        self._log.step("Handling information popup")
        try:
            if await self._wait_for("info_popup", self._options.popup_timeout_ms):
                await self._ui.click("go_to_passes")
                self._log.success('Clicked "Go To Pass(es)"')
            else:
                self._log.info("No info popup found, continuing")
        except (ElementNotFound, InteractionError) as exc:
            self._log.warning('Could not dismiss the info popup, continuing anyway: %s', exc)
        self._log.completed("Info popup handled")
        return session.advance(BookingStage.POPUP_HANDLED)

    async def _select_pass(self, session: BookingSession, request: PassRequest) -> BookingSession:
        self._log.step("Selecting pass type: %s", request.pass_type.value)
        await self._wait_for("pass_cards", self._options.settle_timeout_ms)
        cards = await self._locator.resolve_all("pass_cards")
        texts = [await self._ui.read_text(card) for card in cards]

        index = choose_pass_card(texts, request.pass_type)
        if index is None:
            self._log.warning("Could not find a %s pass card, selecting the first available", request.pass_type.value)
            index = 0
        await self._ui.click("pass_card", element=cards[index])
        self._log.completed(f"Pass selected ({texts[index][:60]!r})")
        return session.advance(BookingStage.PASS_SELECTED)

    async def _choose_branch(self, session: BookingSession) -> BookingSession:
        if await self._locator.exists("vehicle_selector"):
            self._log.step("User appears to be signed in, skipping login")
            return session.advance(BookingStage.SIGNED_IN_BRANCH).mark_logged_in()
        self._log.step("User not signed in, proceeding with guest flow")
        return session.advance(BookingStage.GUEST_BRANCH)

    async def _signed_in_booking(
        self,
        session: BookingSession,
        request: PassRequest,
        vehicle: VehicleProfile,
    ) -> BookingSession:
        session = await self._resolve_vehicle(session, vehicle, detailed_search=False)
        await self._select_date(request)
        await self._add_to_cart()
        return session.advance(BookingStage.CART_ADDED)

    async def _guest_booking(self, session: BookingSession, request: PassRequest) -> BookingSession:
        await self._select_date(request)
        await self._add_to_cart()
        return session.advance(BookingStage.CART_ADDED)

    async def _login(self, session: BookingSession, notices: List[str]) -> BookingSession:
        self._log.step("Handling login")
        if not await self._wait_for("login_form", self._options.settle_timeout_ms):
            await self._browser.screenshot("no_login_form")
            raise LoginError("Login form not found after adding to cart")
        if not self._options.phone_number:
            raise LoginError("No phone number configured for login")

        phone_input = await self._locator.find("phone_input")
        if phone_input is None:
            raise LoginError("Could not find phone number input field")
        await self._ui.fill("phone_input", self._options.phone_number, element=phone_input)

        try:
            await self._ui.click("next_button")
        except (ElementNotFound, InteractionError) as exc:
            raise LoginError(f"Could not find or click Next button: {exc}") from exc

        await self._verify_code(notices)
        session = session.mark_logged_in().advance(BookingStage.LOGIN_COMPLETED)
        await self._persist_login()
        self._log.completed("Login")
        return session

    async def _verify_code(self, notices: List[str]) -> None:
        self._log.step("Handling verification code")
        if not await self._wait_for("otp_inputs", self._options.settle_timeout_ms):
            raise LoginError("Could not find verification code inputs")
        await self._browser.screenshot("otp_form")

        policy = self._options.checkpoint
        self._log.warning("⚠️ Verification code required! Enter the code from your phone in the browser.")
        self._log.info("⏳ Waiting up to %ds for the code to be entered...", policy.timeout_ms // 1000)
        await self._announce(
            "📱 Buntzen Lake booking needs the verification code. "
            "Enter it in the browser window to continue."
        )

        outcome = await await_completion(self._code_pending, policy)
        if outcome is CheckpointOutcome.COMPLETED:
            self._log.success("Verification appears to be completed")
        else:
            timeout = CheckpointTimeout(
                f"Verification not completed within {policy.timeout_ms // 1000}s, submitting anyway"
            )
            self._log.warning("%s", timeout)
            notices.append(str(timeout))

        try:
            await self._ui.click("otp_submit")
        except (ElementNotFound, InteractionError) as exc:
            raise LoginError(f"Could not submit verification code: {exc}") from exc

    async def _code_pending(self) -> bool:
        # Submitting the code navigates the page; a torn-down context means it is no longer pending.
        try:
            return await self._locator.exists("otp_pending")
        except PlaywrightError as exc:
            self._log.debug("Verification check interrupted: %s", exc)
            return False

    async def _post_login(
        self,
        session: BookingSession,
        request: PassRequest,
        vehicle: VehicleProfile,
    ) -> BookingSession:
        self._log.step("Handling post-login flow")
        if not await self._wait_for("vehicle_selector", self._options.settle_timeout_ms):
            await self._browser.screenshot("no_vehicle_selector_found")
            raise VehicleResolutionError("Vehicle selector not found after login")
        session = await self._resolve_vehicle(session, vehicle, detailed_search=True)
        await self._select_date(request)
        await self._add_to_cart()
        self._log.completed("Post-login flow")
        return session.advance(BookingStage.POST_LOGIN_VEHICLE_RESOLVED)

    async def _checkout(self, session: BookingSession) -> BookingSession:
        self._log.step("Completing checkout")
        await self._wait_for("checkout_button", self._options.settle_timeout_ms)
        try:
            await self._ui.click("checkout_button")
        except (ElementNotFound, InteractionError) as exc:
            raise CheckoutError(f"Checkout failed: {exc}") from exc
        await self._browser.screenshot("checkout_completed")
        self._log.completed("Checkout")
        return session.advance(BookingStage.CHECKOUT_COMPLETED)

    # Shared steps

    async def _select_date(self, request: PassRequest) -> None:
        self._log.step("Selecting booking date")
        await self._wait_for("date_buttons", self._options.settle_timeout_ms)
        try:
            buttons = await self._locator.resolve_all("date_buttons")
        except ElementNotFound:
            self._log.warning("No date buttons found, no date was selected. This might cause issues later")
            await self._browser.screenshot("no_date_selected")
            return

        labels = [await self._ui.read_text(button) for button in buttons]
        self._log.info("Available dates: %s", ", ".join(labels))

        day = request.preferred_day
        if request.preferred_date and day is None:
            self._log.warning(
                "Invalid date format: %s. Expected MM/DD or just the day number.",
                request.preferred_date,
            )

        if day is not None:
            active = await self._locator.find("active_date")
            if active is not None and await self._ui.read_text(active) == day:
                self._log.success("Preferred date %s is already selected", day)
                return
            match = await self._locator.find("date_button_for_day", day=day)
            if match is not None:
                await self._ui.click("date_button_for_day", element=match)
                self._log.success("Selected preferred date: %s (day %s)", request.preferred_date, day)
                return
            self._log.warning("Preferred date %s not available, selecting first available", request.preferred_date)
        else:
            self._log.info("No preferred date set, selecting first available date")

        await self._ui.click("date_buttons", element=buttons[0])
        self._log.success("Selected available date: %s", labels[0])

    async def _add_to_cart(self) -> None:
        self._log.step("Adding pass to cart")
        await self._wait_for("add_to_cart", self._options.settle_timeout_ms)
        if await self._locator.exists("sold_out"):
            raise SoldOut("Pass is sold out for the selected date")
        await self._ui.click("add_to_cart")
        self._log.completed("Pass added to cart")

    async def _resolve_vehicle(
        self,
        session: BookingSession,
        vehicle: VehicleProfile,
        *,
        detailed_search: bool,
    ) -> BookingSession:
        self._log.step("Resolving vehicle")
        try:
            await self._ui.click("vehicle_selector_link")
        except ElementNotFound as exc:
            raise VehicleResolutionError(f"Vehicle selector could not be opened: {exc}") from exc

        if not session.vehicle_registered and await self._locator.exists("add_vehicle"):
            await self._register_vehicle(vehicle)
            self._log.completed("Vehicle registered")
            return session.mark_vehicle_registered()

        await self._select_existing_vehicle(vehicle, detailed_search=detailed_search)
        self._log.completed("Vehicle selected")
        return session

    async def _register_vehicle(self, vehicle: VehicleProfile) -> None:
        self._log.step("Adding new vehicle %s %s", vehicle.make, vehicle.model)
        await self._ui.click("add_vehicle")
        if not await self._wait_for("licence_plate_input", self._options.settle_timeout_ms):
            raise VehicleResolutionError("Vehicle registration form did not appear")

        await self._ui.fill("licence_plate_input", vehicle.license_plate)
        await self._ui.select("province_select", vehicle.province)
        await self._ui.select("colour_select", vehicle.color)
        await self._ui.select("make_select", vehicle.make)
        await self._ui.fill("model_input", vehicle.model)
        await self._ui.click("save_vehicle")
        self._log.success("Vehicle form filled and saved")

    async def _select_existing_vehicle(self, vehicle: VehicleProfile, *, detailed_search: bool) -> None:
        if await self._wait_for("vehicle_search", self._options.settle_timeout_ms):
            term = vehicle.search_term(detailed=detailed_search)
            await self._ui.fill("vehicle_search", term)
            self._log.info("Searching vehicles for %r", term)

        try:
            entries = await self._locator.resolve_all("vehicle_entries")
        except ElementNotFound as exc:
            raise VehicleResolutionError("No vehicles listed for selection") from exc

        titles = [await self._ui.read_text(entry) for entry in entries]
        self._log.info("Found %d vehicle entries: %s", len(titles), ", ".join(titles))
        index = choose_vehicle(titles, vehicle.model)
        if index is None:
            raise VehicleResolutionError("No suitable vehicle found for selection")

        await self._ui.click("vehicle_entries", element=entries[index])
        self._log.success("Selected vehicle: %s", titles[index])

        async def popup_closed() -> bool:
            return not await self._locator.exists("vehicle_popup")

        closed = await poll_until(
            popup_closed,
            timeout_ms=self._options.settle_timeout_ms,
            interval_ms=self._options.poll_interval_ms,
        )
        if not closed:
            self._log.warning("Vehicle selection popup may not have closed properly")

    # Helpers

    async def _wait_for(self, target: str, timeout_ms: int) -> bool:
        return await self._locator.wait_for(
            target,
            timeout_ms=timeout_ms,
            interval_ms=self._options.poll_interval_ms,
        )

    async def _persist_login(self) -> None:
        path = self._options.storage_state_path
        if not path:
            return
        try:
            await self._browser.save_storage_state(path)
        except (PlaywrightError, OSError, RuntimeError) as exc:
            self._log.warning("Could not save browser session to %s: %s", path, exc)
            return
        self._log.info("Browser session saved to %s", path)

    async def _announce(self, text: str) -> None:
        notify = self._options.notify
        if notify is None:
            return
        try:
            await notify(text)
        except Exception as exc:
            self._log.warning("Notification failed: %s", exc)

    async def _fail(
        self,
        session: BookingSession,
        exc: BookingAutomationError,
        notices: List[str],
    ) -> BookingResult:
        self._log.error("❌ Booking process failed after %s: %s", session.stage.label, exc)
        screenshot = await self._browser.screenshot("error_state")
        await self._announce(f"❌ Buntzen Lake booking failed: {exc}")
        return BookingResult(
            session=session.fail(),
            error=exc,
            failed_stage=session.stage,
            notices=notices,
            screenshot=screenshot,
        )


async def run_booking(
    request: PassRequest,
    vehicle: VehicleProfile,
    options: Optional[BookingOptions] = None,
) -> BookingResult:
    """Open a browser, run one booking and always close the browser again."""
    options = options or BookingOptions()
    storage_state = None
    if options.storage_state_path and Path(options.storage_state_path).exists():
        storage_state = options.storage_state_path

    result: Optional[BookingResult] = None
    try:
        async with HeadlessBrowser(
            headless=options.headless,
            timeout=options.page_timeout,
            storage_state=storage_state,
            screenshot_dir=options.screenshot_dir,
        ) as browser:
            result = await BookingWorkflow(browser, options).run(request, vehicle)
    except PlaywrightError as exc:
        if result is not None:
            logger.warning("Browser did not close cleanly: %s", exc)
            return result
        error = BookingAutomationError(f"Browser session failed: {exc}")
        error.__cause__ = exc
        return BookingResult(
            session=BookingSession().fail(),
            error=error,
            failed_stage=BookingStage.INIT,
        )
    return result
