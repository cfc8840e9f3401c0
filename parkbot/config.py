from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import List, Mapping, Optional

from dotenv import load_dotenv

from booking import BookingOptions, CheckpointPolicy, PassRequest, PassType, VehicleProfile
from booking.workflow import BASE_URL, Notify

REQUIRED = {
    "PHONE_NUMBER": "phone_number",
    "LICENSE_PLATE": "license_plate",
}


def load_env() -> None:
    load_dotenv()


@dataclass(slots=True)
class Settings:
    phone_number: str = ""

    license_plate: str = ""
    province: str = "BC"
    vehicle_color: str = "BLACK"
    vehicle_make: str = "Tesla"
    vehicle_model: str = "Y"

    pass_type: str = "all_day"
    preferred_date: str = ""

    headless: bool = False
    delay_between_actions: int = 100
    click_attempts: int = 3
    click_retry_delay: int = 1_000
    element_timeout: int = 10_000
    checkpoint_poll_interval: int = 2_000
    checkpoint_timeout: int = 300_000

    base_url: str = BASE_URL
    storage_state: str = ""
    log_level: str = "INFO"
    log_dir: str = "logs"
    screenshot_dir: str = "screenshots"
    timezone: str = "America/Vancouver"

    telegram_bot_token: str = ""
    telegram_chat_id: str = ""

    def missing(self) -> List[str]:
        return [name for name, attr in REQUIRED.items() if not getattr(self, attr)]

    def with_overrides(
        self,
        *,
        preferred_date: Optional[str] = None,
        pass_type: Optional[str] = None,
        headless: Optional[bool] = None,
    ) -> "Settings":
        changes = {}
        if preferred_date:
            changes["preferred_date"] = preferred_date
        if pass_type:
            changes["pass_type"] = pass_type
        if headless:
            changes["headless"] = True
        return replace(self, **changes)

    def pass_request(self) -> PassRequest:
        return PassRequest(
            pass_type=PassType.parse(self.pass_type),
            preferred_date=self.preferred_date or None,
        )

    def vehicle_profile(self) -> VehicleProfile:
        return VehicleProfile(
            license_plate=self.license_plate,
            province=self.province,
            color=self.vehicle_color,
            make=self.vehicle_make,
            model=self.vehicle_model,
        )

    def checkpoint_policy(self) -> CheckpointPolicy:
        return CheckpointPolicy(
            poll_interval_ms=self.checkpoint_poll_interval,
            timeout_ms=self.checkpoint_timeout,
        )

    def booking_options(self, notify: Optional[Notify] = None) -> BookingOptions:
        return BookingOptions(
            base_url=self.base_url,
            phone_number=self.phone_number,
            headless=self.headless,
            action_delay_ms=self.delay_between_actions,
            click_attempts=self.click_attempts,
            click_retry_delay_ms=self.click_retry_delay,
            element_timeout_ms=self.element_timeout,
            checkpoint=self.checkpoint_policy(),
            storage_state_path=self.storage_state or None,
            screenshot_dir=self.screenshot_dir,
            notify=notify,
        )

    @property
    def telegram_enabled(self) -> bool:
        return bool(self.telegram_bot_token and self.telegram_chat_id)


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name, "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "on")


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Build settings from environment variables (a ``.env`` file is honoured)."""
    if env is None:
        load_env()
        env = os.environ
    defaults = Settings()
    return Settings(
        phone_number=env.get("PHONE_NUMBER", defaults.phone_number),
        license_plate=env.get("LICENSE_PLATE", defaults.license_plate),
        province=env.get("PROVINCE", defaults.province),
        vehicle_color=env.get("VEHICLE_COLOR", defaults.vehicle_color),
        vehicle_make=env.get("VEHICLE_MAKE", defaults.vehicle_make),
        vehicle_model=env.get("VEHICLE_MODEL", defaults.vehicle_model),
        pass_type=env.get("PASS_TYPE", defaults.pass_type),
        preferred_date=env.get("PREFERRED_DATE", defaults.preferred_date),
        headless=_env_bool(env, "HEADLESS", defaults.headless),
        delay_between_actions=_env_int(env, "DELAY_BETWEEN_ACTIONS", defaults.delay_between_actions),
        click_attempts=_env_int(env, "CLICK_ATTEMPTS", defaults.click_attempts),
        click_retry_delay=_env_int(env, "CLICK_RETRY_DELAY", defaults.click_retry_delay),
        element_timeout=_env_int(env, "ELEMENT_TIMEOUT", defaults.element_timeout),
        checkpoint_poll_interval=_env_int(
            env, "CHECKPOINT_POLL_INTERVAL", defaults.checkpoint_poll_interval
        ),
        checkpoint_timeout=_env_int(env, "CHECKPOINT_TIMEOUT", defaults.checkpoint_timeout),
        base_url=env.get("BASE_URL", defaults.base_url),
        storage_state=env.get("STORAGE_STATE", defaults.storage_state),
        log_level=env.get("LOG_LEVEL", defaults.log_level).upper(),
        log_dir=env.get("LOG_DIR", defaults.log_dir),
        screenshot_dir=env.get("SCREENSHOT_DIR", defaults.screenshot_dir),
        timezone=env.get("TIMEZONE", defaults.timezone),
        telegram_bot_token=env.get("TELEGRAM_BOT_TOKEN", defaults.telegram_bot_token),
        telegram_chat_id=env.get("TELEGRAM_CHAT_ID", defaults.telegram_chat_id),
    )
