"""
Semantic targets on the Yodel portal (Buntzen Lake) and how to find them.

The portal markup shifts between releases, so every target lists several
strategies in priority order. The first one that matches wins.
"""

from __future__ import annotations

from typing import Dict, Tuple

from .locator import LocatorStrategy, css, fuzzy, text

SCHEDULER = "#scheduler_12196"
VEHICLE_POPUP = '.page.smart-select-page[data-name="smart-select-page"]'

PLACEHOLDER_VEHICLES = ("Select...", "Add a Vehicle")

TARGETS: Dict[str, Tuple[LocatorStrategy, ...]] = {
    # Information popup shown on arrival.
    "info_popup": (css("#informationPopup"),),
    "go_to_passes": (
        fuzzy("Go To Pass", scope="a"),
        css("a.themeBtn.button.popup-close", contains="Go To Pass"),
        css(".themeBtn.button.popup-close", contains="Go To Pass"),
        css("a.themeBtn.button", contains="Go To Pass"),
        css(".popup-close", contains="Go To Pass"),
        fuzzy("Go To Pass", scope="a, button, .themeBtn"),
    ),
    # Pass cards.
    "pass_cards": (
        css(".cardRow .gridCard"),
        css(".gridCard"),
    ),
    # Date picker. Buttons hold the day of the month as their only text.
    "date_buttons": (
        css(f"{SCHEDULER} .dateMain button.date"),
        css(f"{SCHEDULER} button.date"),
        css(".dateMain button.date"),
        css("button.date"),
    ),
    "date_button_for_day": (
        text("{day}", scope=f"{SCHEDULER} .dateMain button.date"),
        text("{day}", scope=f"{SCHEDULER} button.date"),
        text("{day}", scope=".dateMain button.date"),
        text("{day}", scope="button.date"),
    ),
    "active_date": (
        css(f"{SCHEDULER} .dateMain button.date.active"),
        css(".dateMain button.date.active"),
        css("button.date.active"),
    ),
    # Cart.
    "sold_out": (css(".soldout"),),
    "add_to_cart": (
        css(".themeBtn.btn-disbled.button.button-round"),
        css("#cardBtn_12196"),
        fuzzy("Add to Cart", scope="a, button, .themeBtn"),
    ),
    # Login.
    "login_form": (
        css(".signinModel"),
        css(".modelLogin"),
        css("#slideNo1"),
    ),
    "phone_input": (
        css("#txtPhonenumber"),
        css('input[name="number"]'),
        css('input[type="number"]'),
        css('input[placeholder*="Enter number"]'),
        css('input[id*="phone"]'),
        css('input[placeholder*="phone"]'),
    ),
    "next_button": (
        fuzzy("next"),
        css(".cardfooter .themeBtn.button", contains="next"),
    ),
    "otp_inputs": (
        css(".otpFocusInput", min_count=4),
        css('input[type="tel"]', min_count=4),
        css('input[maxlength="1"]', min_count=4),
        css('input[aria-label*="verification"]'),
        css('input[aria-label*="Digit"]'),
    ),
    "otp_pending": (
        css(".otpFocusInput"),
        css('input[maxlength="1"]'),
    ),
    "otp_submit": (
        css(".themeBtn.btn-disbled.button"),
        css(".themeBtn.button"),
        css('button[type="submit"]'),
        css("a.themeBtn.button"),
    ),
    # Vehicle selection.
    "vehicle_selector": (
        css("#selectVehicleSmartSelect"),
        css(".smartSelectCustom"),
        css(".item-link.smart-select"),
        css("[id*='selectVehicle']"),
    ),
    "vehicle_selector_link": (
        css(".smartSelectCustom .item-link.smart-select"),
        css("#selectVehicleSmartSelect"),
        css(".item-link.smart-select"),
    ),
    "vehicle_popup": (css(VEHICLE_POPUP),),
    "vehicle_search": (
        css('input[type="search"][placeholder="Search vehicle"]'),
        css(f'{VEHICLE_POPUP} input[type="search"]'),
    ),
    "vehicle_entries": (
        css(f"{VEHICLE_POPUP} .item-title"),
        css(".item-title"),
    ),
    "add_vehicle": (
        text("Add a Vehicle", scope=f"{VEHICLE_POPUP} .item-title"),
        css('option[value="new_vehicle"]'),
        css('input[value="new_vehicle"]'),
    ),
    # Vehicle registration form.
    "licence_plate_input": (
        css("#licencePlateTxt"),
        css('input[id*="licence"]'),
        css('input[id*="license"]'),
    ),
    "province_select": (css("#stateSelect select"),),
    "colour_select": (css("#colourSelect select"),),
    "make_select": (css("#makeModelSelect select"),),
    "model_input": (css("#vehicleModelTxt"),),
    "save_vehicle": (
        css(".themeBtn.button.button-round", contains="Save"),
        css(".themeBtn.button.button-round"),
    ),
    # Checkout.
    "checkout_button": (
        css("#checkOutButton"),
        fuzzy("Checkout", scope="a, button"),
    ),
}
