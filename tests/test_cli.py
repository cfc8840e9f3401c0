from __future__ import annotations

import pytest

import parkbot.main as main_module
from booking import BookingResult, BookingSession, BookingStage
from parkbot.config import Settings
from parkbot.main import build_parser, check_config, parse_weekdays, run_once, run_scheduler
from parkbot.notify import TelegramNotifier


def test_run_arguments():
    args = build_parser().parse_args(["run", "--date", "08/17", "--type", "half_day", "--headless"])

    assert (args.command, args.date, args.type, args.headless) == ("run", "08/17", "half_day", True)


def test_schedule_modes_are_exclusive():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["schedule", "--daily", "08:00", "--interval", "30"])


def test_weekly_schedule_arguments():
    args = build_parser().parse_args(["schedule", "--weekly", "0,6", "--time", "09:00"])

    assert parse_weekdays(args.weekly) == [0, 6]
    assert args.time == "09:00"


def test_parse_weekdays_rejects_garbage():
    with pytest.raises(ValueError):
        parse_weekdays("sat,sun")


async def test_weekly_schedule_needs_a_time():
    args = build_parser().parse_args(["schedule", "--weekly", "0,6"])

    with pytest.raises(ValueError):
        await run_scheduler(Settings(), args)


def test_check_config_reports_missing_values(caplog):
    assert check_config(Settings()) == 1
    assert "PHONE_NUMBER" in caplog.text


def test_check_config_passes_when_complete():
    assert check_config(Settings(phone_number="6045550123", license_plate="ABC123")) == 0


async def test_run_once_wires_settings_into_the_booking(monkeypatch):
    calls = {}

    async def fake_run_booking(request, vehicle, options):
        calls.update(request=request, vehicle=vehicle, options=options)
        return BookingResult(session=BookingSession(stage=BookingStage.CHECKOUT_COMPLETED))

    monkeypatch.setattr(main_module, "run_booking", fake_run_booking)
    settings = Settings(
        phone_number="6045550123",
        license_plate="ABC123",
        preferred_date="08/17",
        telegram_bot_token="123:abc",
        telegram_chat_id="42",
    )

    result = await run_once(settings)

    assert result.ok
    assert calls["request"].preferred_day == "17"
    assert calls["vehicle"].license_plate == "ABC123"
    assert isinstance(calls["options"].notify, TelegramNotifier)
