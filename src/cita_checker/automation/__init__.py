"""
Cita Previa Checker - Automation Package
"""
from .browser import BrowserManager
from .checker import AppointmentChecker
from .steps import BookingSteps, classify_notice

__all__ = [
    "BrowserManager",
    "AppointmentChecker",
    "BookingSteps",
    "classify_notice",
]
