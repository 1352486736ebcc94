"""
Booking Steps - The fixed sequence of interactions with the cita previa form

Each public coroutine is one step of the flow. Steps raise an
``AutomationError`` subclass when the page does not behave, and return a
notification event when the step has something to report.
"""
import asyncio
import json
from typing import Iterable, List, Optional

from loguru import logger
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..app.config import Settings
from ..app.exceptions import ElementWaitFailure, InteractionFailure, NavigationFailure
from ..app.schemas import Failure, FormElement, Maintenance, NotificationEvent, Success


NOTICE_UNAVAILABLE = "The specific notice about unavailability of appointments is present on the page."
NOTICE_TEXT_NOT_MATCHED = "The specific notice is not found within the element."
NOTICE_NOT_FOUND = "The important notice element is not found on the page."

CLICK_CONFIRM_SCRIPT = """
(buttons, labels) => {
    const button = buttons.find(
        (candidate) => labels.includes(candidate.textContent.trim().toLowerCase())
    );
    if (!button) {
        return false;
    }
    button.click();
    return true;
}
"""

DUMP_ELEMENTS_SCRIPT = """
(elements) => elements.map((el) => ({
    tagName: el.tagName,
    id: el.id || '',
    class: typeof el.className === 'string' ? el.className : '',
    name: el.getAttribute('name'),
    value: el.value === undefined || el.value === null ? null : String(el.value),
    href: typeof el.href === 'string' && el.href ? el.href : null,
    innerText: (el.innerText || '').trim(),
}))
"""


def classify_notice(text: Optional[str], phrases: Iterable[str]) -> NotificationEvent:
    """Turn the office notice into an event.

    ``text`` is None when the notice element is absent. A notice quoting
    one of ``phrases`` means the office has no appointments right now.
    """
    if text is None:
        return Success(message=NOTICE_NOT_FOUND)

    normalized = " ".join(text.split()).lower()
    if any(" ".join(phrase.split()).lower() in normalized for phrase in phrases):
        return Maintenance(message=NOTICE_UNAVAILABLE)
    return Success(message=NOTICE_TEXT_NOT_MATCHED)


class BookingSteps:
    """Drives one page through the cita previa form"""

    def __init__(self, page: Page, settings: Settings):
        self.page = page
        self.settings = settings
        self.site = settings.site
        self.pacing = settings.site.pacing

    async def open_entry_page(self) -> None:
        """Navigate to the procedure directory"""
        logger.info(f"Navigating to {self.site.entry_url}")
        try:
            await self.page.goto(self.site.entry_url)
        except PlaywrightError as e:
            raise NavigationFailure(f"Could not open {self.site.entry_url}: {e}") from e

    async def accept_entry(self) -> None:
        """Click 'Acceder al Procedimiento'"""
        await self._wait(self.site.access_button)
        await self._click_and_settle(self.site.access_button)

    async def select_province(self) -> None:
        """Pick the province and accept"""
        await self._wait(self.site.province_select)
        await self._select(self.site.province_select, self.site.province_value)
        await self._click_and_settle(self.site.accept_button)
        logger.info("Province selected")

    async def select_office(self) -> None:
        """Pick the office and the procedure group"""
        await self._wait(self.site.office_form, visible=True)
        await self._wait(self.site.office_select, visible=True)

        # Picking an office may or may not reload the form
        try:
            async with self.page.expect_navigation(
                wait_until=self.site.settle_state,
                timeout=self.site.office_reload_timeout_ms,
            ):
                await self._select(self.site.office_select, self.site.office_id)
        except PlaywrightTimeoutError:
            logger.warning(
                f"No reload within {self.site.office_reload_timeout_ms} ms after selecting the office, continuing"
            )

        await self._wait(self.site.procedure_select, visible=True)
        await self._select(self.site.procedure_select, self.site.procedure_group_id)
        logger.info(f"Office {self.site.office_id} / procedure {self.site.procedure_group_id} selected")

    async def check_availability(self) -> NotificationEvent:
        """Read the office notice, then accept the selection regardless"""
        text = await self.read_notice()
        event = classify_notice(text, self.site.unavailable_phrases)
        logger.info(f"Notice check: {event.kind} ({event.message})")

        await self._click_and_settle(self.site.accept_button)
        return event

    async def read_notice(self) -> Optional[str]:
        """Text of the notice element, None when the page has none"""
        try:
            element = await self.page.query_selector(self.site.notice)
            if not element:
                return None
            return await element.text_content() or ""
        except PlaywrightError as e:
            raise InteractionFailure(f"Could not read notice {self.site.notice}: {e}") from e

    async def skip_information(self) -> None:
        """Click 'Entrar' on the information page"""
        await self._click_and_settle(self.site.enter_button)

    async def fill_identity(self) -> None:
        """Type the identifier and name, then accept"""
        details = self.settings.personal_details("identifier", "name", "email")

        await self._wait(self.site.identifier_input)
        await self._type(self.site.identifier_input, details.identifier, self.pacing.identity_keystroke_ms)
        await self._pause(self.pacing.identity_pause_ms)
        await self._type(self.site.name_input, details.name, self.pacing.identity_keystroke_ms)

        await self._wait(self.site.accept_button, visible=True)
        await self._scroll_into_view(self.site.accept_button)
        await self._pause(self.pacing.identity_accept_pause_ms)
        await self._click(self.site.accept_button)
        logger.info("Personal details submitted")

    async def request_appointment(self) -> None:
        """Click 'Solicitar Cita'"""
        await self._wait(self.site.request_appointment_button, visible=True)
        logger.info("Found the 'Solicitar Cita' button")
        await self._click_and_settle(self.site.request_appointment_button)

    async def fill_complementary_information(self) -> None:
        """Type phone and email twice, then go to the next page"""
        details = self.settings.personal_details("phone", "email")

        await self._pause(self.pacing.complementary_pause_ms)
        await self._wait(self.site.phone_input, visible=True)
        await self._type(self.site.phone_input, details.phone, self.pacing.phone_keystroke_ms)

        await self._pause(self.pacing.phone_pause_ms)
        await self._wait(self.site.email_input, visible=True)
        await self._type(self.site.email_input, details.email, self.pacing.email_keystroke_ms)

        await self._pause(self.pacing.email_pause_ms)
        await self._wait(self.site.email_confirm_input, visible=True)
        await self._type(self.site.email_confirm_input, details.email, self.pacing.email_confirm_keystroke_ms)

        await self._pause(self.pacing.complementary_next_pause_ms)
        await self._wait(self.site.next_button, visible=True)
        await self._click_and_settle(self.site.next_button)
        logger.info("Complementary information submitted")

    async def select_first_slot(self) -> None:
        """Take the first offered date and confirm it"""
        await self._pause(self.pacing.slot_pause_ms)
        await self._wait(self.site.slot_radio, visible=True)
        await self._click(self.site.first_slot)

        await self._pause(self.pacing.slot_next_pause_ms)
        await self._wait(self.site.next_button, visible=True)
        await self._click(self.site.next_button)

        await self._pause(self.pacing.confirm_dialog_pause_ms)
        await self._wait(self.site.confirm_dialog, visible=True)
        await self._wait(self.site.confirm_dialog_buttons)

        labels = [label.lower() for label in self.site.confirm_labels]
        try:
            clicked = await self.page.eval_on_selector_all(
                self.site.confirm_dialog_buttons, CLICK_CONFIRM_SCRIPT, labels
            )
        except PlaywrightError as e:
            raise InteractionFailure(f"Could not answer the confirmation dialog: {e}") from e

        if clicked:
            logger.info("Confirmation dialog accepted")
        else:
            logger.warning(f"No confirmation button labelled {labels}")

    async def dump_form_elements(self, screenshot: Optional[bytes] = None) -> Failure:
        """Describe every interactive element of the current page"""
        try:
            raw = await self.page.eval_on_selector_all(self.site.diagnostic_elements, DUMP_ELEMENTS_SCRIPT)
        except PlaywrightError as e:
            raise InteractionFailure(f"Could not collect form elements: {e}") from e

        elements: List[FormElement] = [FormElement.model_validate(item) for item in raw]
        serialized = json.dumps(
            [element.model_dump(by_alias=True) for element in elements],
            indent=2,
            ensure_ascii=False,
        )
        logger.info(f"Collected {len(elements)} form elements from {self.page.url}")
        return Failure(message=serialized, screenshot=screenshot)

    # ============== Helper Methods ==============

    async def _wait(self, selector: str, visible: bool = False, timeout: Optional[float] = None):
        try:
            await self.page.wait_for_selector(
                selector,
                state="visible" if visible else "attached",
                timeout=timeout,
            )
        except PlaywrightError as e:
            raise ElementWaitFailure(selector, str(e)) from e

    async def _click(self, selector: str):
        try:
            await self.page.click(selector)
        except PlaywrightError as e:
            raise InteractionFailure(f"Could not click {selector}: {e}") from e

    async def _click_and_settle(self, selector: str):
        """Click and wait until the page it leads to is idle"""
        try:
            async with self.page.expect_navigation(wait_until=self.site.settle_state):
                await self._click(selector)
        except PlaywrightTimeoutError as e:
            raise NavigationFailure(f"No navigation after clicking {selector}") from e
        except PlaywrightError as e:
            raise NavigationFailure(f"Navigation after clicking {selector} failed: {e}") from e

    async def _select(self, selector: str, value: str):
        try:
            await self.page.select_option(selector, value)
        except PlaywrightError as e:
            raise InteractionFailure(f"Could not select {value} in {selector}: {e}") from e

    async def _type(self, selector: str, text: str, delay_ms: int):
        try:
            await self.page.type(selector, text, delay=delay_ms)
        except PlaywrightError as e:
            raise InteractionFailure(f"Could not type into {selector}: {e}") from e

    async def _scroll_into_view(self, selector: str):
        try:
            await self.page.eval_on_selector(selector, "element => element.scrollIntoView()")
        except PlaywrightError as e:
            raise InteractionFailure(f"Could not scroll to {selector}: {e}") from e

    async def _pause(self, ms: int):
        if ms > 0:
            await asyncio.sleep(ms / 1000)
