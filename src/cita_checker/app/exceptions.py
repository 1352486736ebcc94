"""
Exceptions raised by the checker
"""
from typing import Iterable


class CheckerError(Exception):
    """Base class for checker errors"""


class ConfigurationMissing(CheckerError):
    """Required configuration is not set

    When raised mid-run, ``result`` holds the events recorded before it.
    """

    def __init__(self, names: Iterable[str]):
        self.names = list(names)
        self.result = None
        super().__init__(f"Missing environment variables: {', '.join(self.names)}")


class AutomationError(CheckerError):
    """A browser interaction failed"""


class LaunchFailure(AutomationError):
    """The browser process could not be started"""


class PageCreationFailure(AutomationError):
    """A page could not be opened in the browser"""


class NavigationFailure(AutomationError):
    """A navigation did not complete"""


class ElementWaitFailure(AutomationError):
    """An element never appeared"""

    def __init__(self, selector: str, reason: str = ""):
        self.selector = selector
        message = f"Element not found: {selector}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class InteractionFailure(AutomationError):
    """Clicking, selecting or typing on an element failed"""
