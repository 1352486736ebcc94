"""
Cita Previa Checker - Services Package
"""
from .notification import NotificationService

__all__ = ["NotificationService"]
