"""Unit tests for the Resend notification service."""

from __future__ import annotations

import base64
import json

import httpx
import pytest

from cita_checker.app.exceptions import ConfigurationMissing
from cita_checker.app.schemas import Failure, Maintenance, Success
from cita_checker.services.notification import (
    FAILURE_SUBJECT,
    MAINTENANCE_SUBJECT,
    SUCCESS_SUBJECT,
    NotificationService,
)


class Recorder:
    """httpx handler that keeps every request body."""

    def __init__(self, status_code: int = 200) -> None:
        self.status_code = status_code
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json={"id": "email-1"})

    @property
    def payloads(self) -> list[dict]:
        return [json.loads(request.content) for request in self.requests]


@pytest.fixture()
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture()
def service(settings, recorder) -> NotificationService:
    return NotificationService(settings, transport=httpx.MockTransport(recorder))


class TestConfiguration:
    """All of key, receiver and sender are required up front."""

    @pytest.mark.parametrize(
        ("field", "env_name"),
        [
            ("resend_key", "RESEND_KEY"),
            ("resend_receiver_email", "RESEND_RECEIVER_EMAIL"),
            ("resend_sender_email", "RESEND_SENDER_EMAIL"),
        ],
    )
    def test_missing_setting_is_fatal(self, make_settings, field: str, env_name: str) -> None:
        with pytest.raises(ConfigurationMissing) as excinfo:
            NotificationService(make_settings(**{field: None}))
        assert excinfo.value.names == [env_name]


class TestEmails:
    """Subjects, bodies and attachments of the three emails."""

    @pytest.mark.anyio
    async def test_success_email(self, service, recorder) -> None:
        assert await service.notify_success("notice missing") is True

        request = recorder.requests[0]
        assert request.method == "POST"
        assert str(request.url) == "https://api.resend.com/emails"
        assert request.headers["Authorization"] == "Bearer re_test_key"

        payload = recorder.payloads[0]
        assert payload["subject"] == SUCCESS_SUBJECT
        assert payload["from"] == "onboarding@resend.dev"
        assert payload["to"] == ["operator@example.com"]
        assert "Additional message: notice missing" in payload["html"]
        assert payload["html"].startswith("<div><p>")

    @pytest.mark.anyio
    async def test_failure_with_screenshot_has_one_attachment(self, service, recorder) -> None:
        screenshot = b"\x89PNG\r\n\x1a\nimage"
        await service.notify_failure("Error navigating to URL", screenshot)

        payload = recorder.payloads[0]
        assert payload["subject"] == FAILURE_SUBJECT
        assert len(payload["attachments"]) == 1
        attachment = payload["attachments"][0]
        assert attachment["filename"].endswith(".png")
        assert base64.b64decode(attachment["content"]) == screenshot

    @pytest.mark.anyio
    async def test_failure_without_screenshot_has_no_attachment(self, service, recorder) -> None:
        await service.notify_failure("Error launching browser")
        assert "attachments" not in recorder.payloads[0]

    @pytest.mark.anyio
    async def test_maintenance_email(self, service, recorder) -> None:
        await service.notify_maintenance("no appointments")
        payload = recorder.payloads[0]
        assert payload["subject"] == MAINTENANCE_SUBJECT
        assert "It all seems to be working as it should" in payload["html"]

    @pytest.mark.anyio
    async def test_message_is_escaped(self, service, recorder) -> None:
        await service.notify_failure('[{"tagName": "<A>"}]')
        assert "&lt;A&gt;" in recorder.payloads[0]["html"]


class TestDelivery:
    """Delivery problems are logged and reported as False."""

    @pytest.mark.anyio
    async def test_provider_error_returns_false(self, settings) -> None:
        recorder = Recorder(status_code=422)
        service = NotificationService(settings, transport=httpx.MockTransport(recorder))
        assert await service.notify_success("x") is False

    @pytest.mark.anyio
    async def test_network_error_returns_false(self, settings) -> None:
        def unreachable(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        service = NotificationService(settings, transport=httpx.MockTransport(unreachable))
        assert await service.notify_maintenance("x") is False


class TestDispatch:
    """Events are routed to the matching email."""

    @pytest.mark.anyio
    @pytest.mark.parametrize(
        ("event", "subject"),
        [
            (Success(message="a"), SUCCESS_SUBJECT),
            (Failure(message="b", screenshot=b"png"), FAILURE_SUBJECT),
            (Maintenance(message="c"), MAINTENANCE_SUBJECT),
        ],
    )
    async def test_routes_by_kind(self, service, recorder, event, subject: str) -> None:
        await service.dispatch(event)
        assert [payload["subject"] for payload in recorder.payloads] == [subject]
