"""User notifications."""

from momo.notifications.telegram import TelegramNotifier, format_transfer_message

__all__ = ["TelegramNotifier", "format_transfer_message"]
