"""
Entry point - configures logging, runs the checks and sends their emails
"""
import asyncio
import random
import sys
from datetime import datetime, timezone
from typing import Callable, Optional

from loguru import logger

from .app.config import Settings, settings as default_settings
from .app.exceptions import ConfigurationMissing
from .app.schemas import CheckResult, Maintenance
from .automation.checker import AppointmentChecker
from .services.notification import NotificationService


EVERY_1_MINUTE = 60
EVERY_5_MINUTES = 5 * 60
EVERY_6_HOURS = 6 * 60 * 60


def setup_logging(settings: Optional[Settings] = None):
    """Configure logging"""
    settings = settings or default_settings
    settings.logs_dir.mkdir(parents=True, exist_ok=True)
    log_file = settings.logs_dir / "cita_checker.log"

    logger.remove()
    logger.add(sys.stderr, level=settings.log_level.upper())
    logger.add(
        log_file,
        rotation="10 MB",
        retention="7 days",
        level="DEBUG",
        format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {message}",
    )


def log_up_and_running():
    logger.info(f"{datetime.now(timezone.utc).isoformat()}: Server is up and running")


async def notify_events(
    notification: NotificationService,
    result: CheckResult,
    include_maintenance: bool = True,
):
    """Email every event of a run, in the order the run produced them"""
    for event in result.events:
        if isinstance(event, Maintenance) and not include_maintenance:
            logger.info(f"Maintenance notice not emailed: {event.message}")
            continue
        await notification.dispatch(event)


async def _run_and_notify(
    notification: NotificationService,
    settings: Settings,
    checker_factory: Callable,
    include_maintenance: bool,
) -> CheckResult:
    """Run the checker and email its events, even those of a run cut short"""
    try:
        result = await checker_factory(settings).run()
    except ConfigurationMissing as e:
        if e.result is not None:
            await notify_events(notification, e.result, include_maintenance)
        raise
    await notify_events(notification, result, include_maintenance)
    return result


async def check_for_appointments(
    notification: NotificationService,
    settings: Optional[Settings] = None,
    checker_factory: Callable = AppointmentChecker,
) -> CheckResult:
    """Run the flow, emailing successes and failures only"""
    settings = settings or default_settings
    logger.info("Running check_for_appointments")

    if settings.start_jitter_minutes > 0:
        minutes = random.randint(1, settings.start_jitter_minutes)
        logger.info(f"Starting the check in {minutes} minutes")
        await asyncio.sleep(minutes * 60)

    return await _run_and_notify(notification, settings, checker_factory, include_maintenance=False)


async def check_systems_in_order(
    notification: NotificationService,
    settings: Optional[Settings] = None,
    checker_factory: Callable = AppointmentChecker,
) -> CheckResult:
    """Run the flow, emailing every event including maintenance notices"""
    settings = settings or default_settings
    logger.info(f"{datetime.now(timezone.utc).isoformat()}: Running check_systems_in_order")

    return await _run_and_notify(notification, settings, checker_factory, include_maintenance=True)


async def every(interval: float, job: Callable, immediately: bool = False):
    """Call ``job`` every ``interval`` seconds, the first time right away if ``immediately``"""
    if not immediately:
        await asyncio.sleep(interval)
    while True:
        outcome = job()
        if asyncio.iscoroutine(outcome):
            await outcome
        await asyncio.sleep(interval)


async def run(settings: Optional[Settings] = None, checker_factory: Callable = AppointmentChecker):
    """Check once, or keep checking on fixed intervals when scheduling is enabled"""
    settings = settings or default_settings
    notification = NotificationService(settings)
    settings.personal_details("identifier", "name", "email", "phone")
    log_up_and_running()

    if not settings.schedule_enabled:
        await check_for_appointments(notification, settings, checker_factory)
        return

    logger.info("Scheduling enabled: appointments every 5 minutes, full check every 6 hours")
    await asyncio.gather(
        every(
            EVERY_5_MINUTES,
            lambda: check_for_appointments(notification, settings, checker_factory),
            immediately=True,
        ),
        every(EVERY_6_HOURS, lambda: check_systems_in_order(notification, settings, checker_factory)),
        every(EVERY_1_MINUTE, log_up_and_running),
    )


def main():
    """Main entry point"""
    setup_logging()
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        logger.info("Interrupted by user")


if __name__ == "__main__":
    main()
