"""
Cita Previa Checker - Application Package
"""
from .config import settings, Settings, SiteProfile, Pacing
from .exceptions import (
    CheckerError,
    ConfigurationMissing,
    AutomationError,
    LaunchFailure,
    PageCreationFailure,
    NavigationFailure,
    ElementWaitFailure,
    InteractionFailure,
)
from .schemas import CheckResult, Failure, FormElement, Maintenance, PersonalDetails, Success

__all__ = [
    "settings",
    "Settings",
    "SiteProfile",
    "Pacing",
    "CheckerError",
    "ConfigurationMissing",
    "AutomationError",
    "LaunchFailure",
    "PageCreationFailure",
    "NavigationFailure",
    "ElementWaitFailure",
    "InteractionFailure",
    "CheckResult",
    "Failure",
    "FormElement",
    "Maintenance",
    "PersonalDetails",
    "Success",
]
