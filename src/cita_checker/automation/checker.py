"""
Appointment Checker - Runs the booking flow once and collects what happened
"""
import asyncio
from datetime import datetime
from typing import Awaitable, Callable, List, Optional, Tuple

from loguru import logger

from ..app.config import Settings, settings as default_settings
from ..app.exceptions import ConfigurationMissing, LaunchFailure, PageCreationFailure
from ..app.schemas import CheckResult, Failure, NotificationEvent
from .browser import BrowserManager
from .steps import BookingSteps


LAUNCH_ERROR = "Error launching browser"
PAGE_ERROR = "Error creating new page"
CLOSE_ERROR = "Error closing browser"
DIAGNOSTICS_ERROR = "Error collecting page diagnostics"

Step = Callable[[], Awaitable[Optional[NotificationEvent]]]


class AppointmentChecker:
    """One best-effort pass through the cita previa form.

    Steps run strictly in order. The first step that raises ends the run:
    its failure is recorded with a screenshot and the browser is closed.
    Nothing is retried. ``ConfigurationMissing`` is not recorded; it
    propagates once the browser is closed, carrying the partial result.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        browser_factory: Callable[[Settings], BrowserManager] = BrowserManager,
    ):
        self.settings = settings or default_settings
        self._browser_factory = browser_factory

    async def run(self) -> CheckResult:
        """Run the whole flow and return the events it produced"""
        logger.info(f"Running appointment check (site profile {self.settings.site.version})")
        result = CheckResult()
        browser = self._browser_factory(self.settings)

        try:
            async with browser:
                result.completed = await self._run_session(browser, result)
                if result.completed:
                    # Give the page's console output time to reach the log
                    await asyncio.sleep(self.settings.close_delay_ms / 1000)
        except LaunchFailure:
            result.events.append(Failure(message=LAUNCH_ERROR))
        except ConfigurationMissing as e:
            if browser.close_error is not None:
                result.events.append(Failure(message=CLOSE_ERROR))
            result.finished_at = datetime.now()
            logger.error(f"Check stopped: {e}")
            e.result = result
            raise

        if browser.close_error is not None:
            result.events.append(Failure(message=CLOSE_ERROR))

        result.finished_at = datetime.now()
        logger.info(
            f"Check finished (completed: {result.completed}, "
            f"events: {[event.kind for event in result.events]})"
        )
        return result

    def sequence(self, steps: BookingSteps) -> List[Tuple[str, Step]]:
        """The flow, as (failure message, step) pairs"""
        return [
            ("Error navigating to URL", steps.open_entry_page),
            ("Error clicking on button to access procedure", steps.accept_entry),
            ("Error selecting province and clicking accept button", steps.select_province),
            ("Error selecting office and procedure", steps.select_office),
            ("Error selecting office and procedure", steps.check_availability),
            ("Error clicking on button to skip information page", steps.skip_information),
            ("Error filling in personal details", steps.fill_identity),
            ("Error selecting option for new appointment", steps.request_appointment),
            ("Error filling in complementary information", steps.fill_complementary_information),
            ("Error selecting first available date", steps.select_first_slot),
        ]

    async def _run_session(self, browser: BrowserManager, result: CheckResult) -> bool:
        try:
            page = await browser.new_page()
        except PageCreationFailure:
            result.events.append(Failure(message=PAGE_ERROR))
            return False

        steps = BookingSteps(page, self.settings)
        for message, step in self.sequence(steps):
            if not await self._guarded(browser, result, message, step):
                return False

        if self.settings.diagnostic_dump_enabled:
            screenshot = await browser.screenshot()
            await self._guarded(
                browser,
                result,
                DIAGNOSTICS_ERROR,
                lambda: steps.dump_form_elements(screenshot),
            )
        return True

    async def _guarded(
        self,
        browser: BrowserManager,
        result: CheckResult,
        message: str,
        step: Step,
    ) -> bool:
        """Run one step; on error record a Failure with a screenshot and report False"""
        try:
            event = await step()
        except ConfigurationMissing:
            raise
        except Exception as e:
            logger.error(f"{message}: {e}")
            screenshot = await browser.screenshot()
            result.events.append(Failure(message=message, screenshot=screenshot))
            return False

        if event is not None:
            result.events.append(event)
        return True
