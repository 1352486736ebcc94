"""
Notification Service - Sends operator emails through the Resend API
"""
import base64
import html
from typing import Optional

import httpx
from loguru import logger

from ..app.config import Settings, settings as default_settings
from ..app.exceptions import ConfigurationMissing
from ..app.schemas import Failure, Maintenance, NotificationEvent, Success


SUCCESS_SUBJECT = "URGENT! Appointment available!"
FAILURE_SUBJECT = "The script failed"
MAINTENANCE_SUBJECT = "Maintenance message"

SCREENSHOT_FILENAME = "screenshot.png"


class NotificationService:
    """Sends success, failure and maintenance emails"""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or default_settings
        self._transport = transport

        missing = [
            name
            for name, value in (
                ("RESEND_KEY", self.settings.resend_key),
                ("RESEND_RECEIVER_EMAIL", self.settings.resend_receiver_email),
                ("RESEND_SENDER_EMAIL", self.settings.resend_sender_email),
            )
            if not value
        ]
        if missing:
            raise ConfigurationMissing(missing)

    async def notify_success(self, message: str) -> bool:
        """Tell the operator an appointment may be available"""
        full_message = (
            "Hey! It seems there might be an appointment available. "
            f"Please check the website. Additional message: {message}"
        )
        return await self.send_email(SUCCESS_SUBJECT, full_message)

    async def notify_failure(self, message: str, screenshot: Optional[bytes] = None) -> bool:
        """Tell the operator a step failed, attaching the page screenshot if any"""
        full_message = f"Something has wrong with the script. Additional message: {message}"
        attachments = []
        if screenshot:
            attachments.append(
                {
                    "filename": SCREENSHOT_FILENAME,
                    "content": base64.b64encode(screenshot).decode("ascii"),
                }
            )
        return await self.send_email(FAILURE_SUBJECT, full_message, attachments)

    async def notify_maintenance(self, message: str) -> bool:
        """Tell the operator the flow works but the office has no appointments"""
        full_message = f"It all seems to be working as it should. Additional message: {message}"
        return await self.send_email(MAINTENANCE_SUBJECT, full_message)

    async def dispatch(self, event: NotificationEvent) -> bool:
        """Send the email matching an event"""
        if isinstance(event, Success):
            return await self.notify_success(event.message)
        if isinstance(event, Failure):
            return await self.notify_failure(event.message, event.screenshot)
        if isinstance(event, Maintenance):
            return await self.notify_maintenance(event.message)
        raise TypeError(f"Unknown notification event: {event!r}")

    async def send_email(
        self,
        subject: str,
        message: str,
        attachments: Optional[list] = None,
    ) -> bool:
        """Post one email to Resend; delivery errors are logged, never raised"""
        payload = {
            "from": self.settings.resend_sender_email,
            "to": [self.settings.resend_receiver_email],
            "subject": subject,
            "html": f"<div><p>{html.escape(message)}</p></div>",
        }
        if attachments:
            payload["attachments"] = attachments

        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=10) as client:
                response = await client.post(
                    self.settings.resend_api_url,
                    json=payload,
                    headers={"Authorization": f"Bearer {self.settings.resend_key}"},
                )

            if response.is_success:
                logger.info(f"Email sent: {subject}")
                return True
            else:
                logger.error(f"Resend error ({response.status_code}): {response.text}")
                return False

        except Exception as e:
            logger.error(f"Email notification failed: {e}")
            return False
