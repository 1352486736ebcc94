"""Shared fixtures: settings without delays and in-memory stand-ins for Playwright objects."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, Callable, Optional

import pytest

from cita_checker.app.config import Pacing, Settings, SiteProfile


# ---------------------------------------------------------------------------
# anyio
# ---------------------------------------------------------------------------


@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


def _settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "_env_file": None,
        "personal_details_nie": "Y1234567X",
        "personal_details_name": "JANE DOE",
        "personal_details_email": "jane@example.com",
        "personal_details_phone_number": "600123123",
        "resend_key": "re_test_key",
        "resend_receiver_email": "operator@example.com",
        "resend_sender_email": "onboarding@resend.dev",
        "close_delay_ms": 0,
        "site": SiteProfile(pacing=Pacing(**{name: 0 for name in Pacing.model_fields})),
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture()
def make_settings() -> Callable[..., Settings]:
    """Factory for settings with complete personal details and no pauses."""
    return _settings


@pytest.fixture()
def settings() -> Settings:
    return _settings()


# ---------------------------------------------------------------------------
# Playwright fakes
# ---------------------------------------------------------------------------

DEFAULT_FORM_ELEMENTS = [
    {
        "tagName": "INPUT",
        "id": "btnSiguiente",
        "class": "mf-button",
        "name": None,
        "value": "Siguiente",
        "href": None,
        "innerText": "",
    },
    {
        "tagName": "A",
        "id": "",
        "class": "",
        "name": None,
        "value": None,
        "href": "https://sede.example/ayuda",
        "innerText": "Ayuda",
    },
]


class FakeElement:
    def __init__(self, text: str) -> None:
        self._text = text

    async def text_content(self) -> str:
        return self._text


class FakePage:
    """Records every call; ``fail_on`` maps ``(method, target)`` or ``method`` to an exception."""

    def __init__(
        self,
        notice_text: Optional[str] = None,
        fail_on: Optional[dict] = None,
        form_elements: Optional[list] = None,
        confirm_clicked: bool = True,
        screenshot_bytes: bytes = b"\x89PNG\r\n\x1a\nfake",
    ) -> None:
        self.notice_text = notice_text
        self.fail_on = fail_on or {}
        self.form_elements = DEFAULT_FORM_ELEMENTS if form_elements is None else form_elements
        self.confirm_clicked = confirm_clicked
        self.screenshot_bytes = screenshot_bytes
        self.url = "https://sede.example/icpplus/acOfertarCita"
        self.calls: list[tuple[str, Any]] = []
        self.typed: list[tuple[str, str, Any]] = []
        self.selected: dict[str, str] = {}
        self.init_scripts: list[str] = []
        self.listeners: dict[str, Callable] = {}
        self.confirm_labels: Optional[list] = None
        self.default_timeout: Optional[float] = None

    def _record(self, method: str, target: Any = None) -> None:
        self.calls.append((method, target))
        for key in ((method, target), method):
            if key in self.fail_on:
                raise self.fail_on[key]

    def called(self, method: str) -> list:
        return [target for name, target in self.calls if name == method]

    async def goto(self, url: str, **kwargs: Any) -> None:
        self._record("goto", url)

    async def wait_for_selector(self, selector: str, state: Any = None, timeout: Any = None) -> None:
        self._record("wait_for_selector", selector)

    async def click(self, selector: str) -> None:
        self._record("click", selector)

    async def select_option(self, selector: str, value: str) -> None:
        self._record("select_option", selector)
        self.selected[selector] = value

    async def type(self, selector: str, text: str, delay: Any = None) -> None:
        self._record("type", selector)
        self.typed.append((selector, text, delay))

    async def query_selector(self, selector: str) -> Optional[FakeElement]:
        self._record("query_selector", selector)
        if self.notice_text is None:
            return None
        return FakeElement(self.notice_text)

    async def eval_on_selector(self, selector: str, expression: str) -> None:
        self._record("eval_on_selector", selector)

    async def eval_on_selector_all(self, selector: str, expression: str, arg: Any = None) -> Any:
        self._record("eval_on_selector_all", selector)
        if arg is not None:
            self.confirm_labels = arg
            return self.confirm_clicked
        return self.form_elements

    async def screenshot(self, **kwargs: Any) -> bytes:
        self._record("screenshot")
        return self.screenshot_bytes

    async def add_init_script(self, script: str) -> None:
        self.init_scripts.append(script)

    def on(self, event: str, callback: Callable) -> None:
        self.listeners[event] = callback

    def set_default_timeout(self, timeout: float) -> None:
        self.default_timeout = timeout

    @asynccontextmanager
    async def expect_navigation(self, wait_until: Any = None, timeout: Any = None):
        yield
        self._record("navigation", timeout)


class FakeContext:
    def __init__(self, driver: "FakeDriver") -> None:
        self._driver = driver

    async def new_page(self) -> FakePage:
        if self._driver.new_page_error:
            raise self._driver.new_page_error
        return self._driver.page


class FakeBrowser:
    def __init__(self, driver: "FakeDriver") -> None:
        self._driver = driver
        self.close_calls = 0
        self.context_options: Optional[dict] = None

    async def new_context(self, **options: Any) -> FakeContext:
        self.context_options = options
        return FakeContext(self._driver)

    async def close(self) -> None:
        self.close_calls += 1
        if self._driver.close_error:
            raise self._driver.close_error


class FakeDriver:
    """Stands in for ``async_playwright``: ``factory()``, ``.start()`` and ``.chromium`` all return it."""

    def __init__(
        self,
        page: Optional[FakePage] = None,
        launch_error: Optional[Exception] = None,
        new_page_error: Optional[Exception] = None,
        close_error: Optional[Exception] = None,
    ) -> None:
        self.page = page or FakePage()
        self.launch_error = launch_error
        self.new_page_error = new_page_error
        self.close_error = close_error
        self.browser = FakeBrowser(self)
        self.launch_options: Optional[dict] = None
        self.stop_calls = 0

    def __call__(self) -> "FakeDriver":
        return self

    async def start(self) -> "FakeDriver":
        return self

    @property
    def chromium(self) -> "FakeDriver":
        return self

    async def launch(self, **options: Any) -> FakeBrowser:
        self.launch_options = options
        if self.launch_error:
            raise self.launch_error
        return self.browser

    async def stop(self) -> None:
        self.stop_calls += 1


@pytest.fixture()
def make_page() -> Callable[..., FakePage]:
    return FakePage


@pytest.fixture()
def make_driver() -> Callable[..., FakeDriver]:
    return FakeDriver
