"""Outbound chat channels."""

from tablehand.notifications.telegram import NotificationResult, TelegramNotifier

__all__ = ["NotificationResult", "TelegramNotifier"]
