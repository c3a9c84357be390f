"""Notification channels for pm2stream."""

from .discord import DiscordWebhookNotifier, NotificationType

__all__ = ['DiscordWebhookNotifier', 'NotificationType']
