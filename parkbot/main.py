from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from booking import BookingResult, run_booking
from booking.log import get_logger

from .config import Settings, load_settings
from .logs import setup_logging
from .notify import TelegramNotifier
from .scheduler import BookingScheduler

logger = get_logger("parkbot")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="parkbot",
        description="Automated bot for booking parking passes at Buntzen Lake",
    )
    commands = parser.add_subparsers(dest="command")

    run = commands.add_parser("run", help="Run the bot once to book a parking pass")
    run.add_argument("-d", "--date", help="Preferred date (MM/DD or day of month)")
    run.add_argument("-t", "--type", choices=("all_day", "half_day"), help="Pass type")
    run.add_argument("--headless", action="store_true", help="Run the browser headless")

    schedule = commands.add_parser("schedule", help="Start the bot scheduler")
    group = schedule.add_mutually_exclusive_group()
    group.add_argument("-d", "--daily", metavar="HH:MM", help="Run daily at a specific time")
    group.add_argument("-i", "--interval", metavar="MINUTES", type=int, help="Run every N minutes")
    group.add_argument("-w", "--weekly", metavar="DAYS", help="Run weekly on days 0-6 (0 = Sunday), comma-separated")
    group.add_argument("--default", action="store_true", help="Default schedule: 08:00, 08:30 and 18:00 daily")
    schedule.add_argument("-t", "--time", metavar="HH:MM", help="Time for weekly runs")
    schedule.add_argument("--headless", action="store_true", help="Run the browser headless")

    commands.add_parser("test-config", help="Check the bot configuration")
    commands.add_parser("init", help="Create log and screenshot directories")
    return parser


def parse_weekdays(value: str) -> List[int]:
    try:
        return [int(part.strip()) for part in value.split(",") if part.strip()]
    except ValueError:
        raise ValueError(f"Invalid weekday list {value!r}, expected e.g. 0,6") from None


async def run_once(settings: Settings) -> BookingResult:
    notify = None
    if settings.telegram_enabled:
        notify = TelegramNotifier(settings.telegram_bot_token, settings.telegram_chat_id)

    result = await run_booking(
        settings.pass_request(),
        settings.vehicle_profile(),
        settings.booking_options(notify),
    )
    for notice in result.notices:
        logger.warning("%s", notice)
    if result.ok:
        logger.success(result.message)
    else:
        logger.error(result.message)
        if result.screenshot:
            logger.info("Diagnostic screenshot: %s", result.screenshot)
    return result


async def run_scheduler(settings: Settings, args: argparse.Namespace) -> None:
    scheduler = BookingScheduler(lambda: run_once(settings), timezone=settings.timezone)
    if args.daily:
        scheduler.schedule_daily(args.daily, "daily_booking")
    elif args.interval:
        scheduler.schedule_interval(args.interval, "interval_booking")
    elif args.weekly:
        if not args.time:
            raise ValueError("--weekly requires --time HH:MM")
        scheduler.schedule_weekly(parse_weekdays(args.weekly), args.time, "weekly_booking")
    else:
        scheduler.start_default()

    logger.success("Scheduler started with jobs: %s", ", ".join(scheduler.jobs()))
    logger.info("Press Ctrl+C to stop the scheduler")
    try:
        await asyncio.Event().wait()
    finally:
        scheduler.stop_all()
        logger.success("Scheduler stopped")


def check_config(settings: Settings) -> int:
    logger.step("Testing bot configuration")
    missing = settings.missing()
    if missing:
        logger.warning("Missing required settings: %s", ", ".join(missing))
        logger.info("Please check your .env file")
    else:
        logger.success("All required settings are present")

    try:
        request = settings.pass_request()
    except ValueError as exc:
        logger.error("%s", exc)
        return 1

    def mark(value: str) -> str:
        return "✓ Set" if value else "✗ Missing"

    logger.info("Current configuration:")
    logger.info("  Phone Number: %s", mark(settings.phone_number))
    logger.info("  License Plate: %s", mark(settings.license_plate))
    logger.info("  Province: %s", settings.province)
    logger.info("  Vehicle: %s %s (%s)", settings.vehicle_make, settings.vehicle_model, settings.vehicle_color)
    logger.info("  Pass Type: %s", request.pass_type.value)
    logger.info("  Preferred Date: %s", settings.preferred_date or "Not set")
    logger.info("  Headless Mode: %s", "Yes" if settings.headless else "No")
    logger.info(
        "  Verification wait: %ds (checking every %ds)",
        settings.checkpoint_timeout // 1000,
        settings.checkpoint_poll_interval // 1000,
    )
    logger.info("  Telegram notifications: %s", "On" if settings.telegram_enabled else "Off")
    return 1 if missing else 0


def init_workspace(settings: Settings) -> int:
    logger.step("Initializing bot configuration")
    for directory in (settings.log_dir, settings.screenshot_dir):
        path = Path(directory)
        if path.exists():
            logger.success("%s directory already exists", directory)
        else:
            path.mkdir(parents=True)
            logger.success("Created %s directory", directory)

    if Path(".env").exists():
        logger.success(".env file found")
    else:
        logger.warning(".env file not found. Copy env.example to .env and fill in your details")

    logger.info("Next steps:")
    logger.info("1. Fill in PHONE_NUMBER and your vehicle details in .env")
    logger.info("2. Run: parkbot run --headless")
    logger.info("3. Run: parkbot schedule --default")
    return 0


def cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = load_settings()
    setup_logging(settings.log_level, settings.log_dir)

    if args.command is None:
        parser.print_help()
        return 0
    if args.command == "test-config":
        return check_config(settings)
    if args.command == "init":
        return init_workspace(settings)

    settings = settings.with_overrides(
        preferred_date=getattr(args, "date", None),
        pass_type=getattr(args, "type", None),
        headless=args.headless,
    )
    try:
        if args.command == "run":
            logger.step("Starting bot in single-run mode")
            result = asyncio.run(run_once(settings))
            return 0 if result.ok else 1
        asyncio.run(run_scheduler(settings, args))
    except ValueError as exc:
        logger.error("%s", exc)
        return 2
    except KeyboardInterrupt:
        logger.info("Interrupted")
    return 0


def main() -> None:
    sys.exit(cli())


if __name__ == "__main__":
    main()
