"""
Discord webhook notifications for pm2stream.

Delivers admin alerts as a single embed posted to a Discord webhook. An
unconfigured notifier is silent; delivery failures raise NotificationError so
callers can log them.
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

import httpx

from ..config.settings import Settings
from ..core.exceptions import NotificationError
from ..core.models import LogLevel, LogRecord
from ..utils.formatting import FormattingUtils


class NotificationType(str, Enum):
    ERROR = "ERROR"
    SERVER_PROVISIONING_FAILED = "SERVER_PROVISIONING_FAILED"
    RATE_LIMIT = "RATE_LIMIT"


EMBED_COLORS = {
    NotificationType.ERROR: 0xFF0000,  # Red
    NotificationType.SERVER_PROVISIONING_FAILED: 0xFF6600,  # Orange
    NotificationType.RATE_LIMIT: 0xFFFF00,  # Yellow
}
DEFAULT_EMBED_COLOR = 0x808080

PING_TYPES = (NotificationType.ERROR, NotificationType.SERVER_PROVISIONING_FAILED)


def field(name: str, value: str, inline: bool = False) -> Dict[str, Any]:
    return {'name': name, 'value': value, 'inline': inline}


class DiscordWebhookNotifier:
    """
    Sends notifications to a Discord webhook.
    """
    
    def __init__(self, config, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Initialize the notifier.
        
        Args:
            config: Application configuration
            transport: Optional httpx transport (used by tests)
        """
        self.config = config
        self.logger = logging.getLogger(__name__)
        self._transport = transport
        self.timeout = config.notifications.timeout
        self._apply_defaults()
    
    def _apply_defaults(self):
        notifications = self.config.notifications
        self.webhook_url = notifications.discord_webhook_url
        self.admin_role_id = notifications.discord_admin_role_id
        self.bot_name = notifications.bot_name or Settings.DEFAULT_BOT_NAME
        self.avatar_url = notifications.avatar_url or ""
    
    def update_config(self, webhook_settings: Mapping[str, Any]):
        """
        Apply webhook settings saved from the admin panel.
        
        Settings without ``enabled`` and a webhook URL fall back to the
        configured defaults.
        
        Args:
            webhook_settings: Panel settings (``discordWebhookUrl``,
                ``discordAdminRoleId``, ``botName``, ``avatarUrl``, ``enabled``)
        """
        if webhook_settings.get('enabled') and webhook_settings.get('discordWebhookUrl'):
            self.webhook_url = webhook_settings['discordWebhookUrl']
            self.admin_role_id = webhook_settings.get('discordAdminRoleId')
            self.bot_name = webhook_settings.get('botName') or Settings.DEFAULT_BOT_NAME
            self.avatar_url = webhook_settings.get('avatarUrl') or ""
            self.logger.info("Discord webhook configuration updated from panel settings")
        else:
            self._apply_defaults()
    
    def is_configured(self) -> bool:
        return bool(self.webhook_url)
    
    def build_payload(self, notification_type: NotificationType, title: str, description: str,
                      fields: Optional[List[Dict[str, Any]]] = None,
                      additional_content: Optional[str] = None) -> Dict[str, Any]:
        """
        Build the webhook request body.
        
        Args:
            notification_type: Kind of notification, selects colour and ping
            title: Embed title
            description: Embed description
            fields: Embed fields
            additional_content: Message text outside the embed
            
        Returns:
            JSON-serialisable payload
        """
        embed = {
            'title': title,
            'description': description,
            'color': EMBED_COLORS.get(notification_type, DEFAULT_EMBED_COLOR),
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'footer': {'text': Settings.NOTIFICATION_FOOTER},
        }
        if fields:
            embed['fields'] = fields
        
        payload = {
            'username': self.bot_name,
            'embeds': [embed],
        }
        
        if notification_type in PING_TYPES and self.admin_role_id:
            payload['content'] = f"<@&{self.admin_role_id}> {additional_content or 'Critical notification!'}"
        elif additional_content:
            payload['content'] = additional_content
        
        if self.avatar_url:
            payload['avatar_url'] = self.avatar_url
        
        return payload
    
    async def send_notification(self, notification_type: NotificationType, title: str, description: str,
                                fields: Optional[List[Dict[str, Any]]] = None,
                                additional_content: Optional[str] = None) -> bool:
        """
        Post a notification to the webhook.
        
        Returns:
            True if delivered, False if no webhook is configured
            
        Raises:
            NotificationError: If the request fails or Discord rejects it
        """
        if not self.webhook_url:
            return False
        
        payload = self.build_payload(notification_type, title, description, fields, additional_content)
        
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                response = await client.post(self.webhook_url, json=payload)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise NotificationError(
                f"Discord webhook returned {e.response.status_code}: {e.response.text[:200]}"
            ) from e
        except httpx.HTTPError as e:
            raise NotificationError(f"Discord webhook request failed: {e}") from e
        
        self.logger.debug(f"Sent {notification_type.value} notification: {title}")
        return True
    
    def build_log_alert(self, record: LogRecord) -> Dict[str, Any]:
        """
        Build title, description and fields for an error log record.
        
        Args:
            record: Error or critical log record
            
        Returns:
            Keyword arguments for ``send_notification``
        """
        if record.level == LogLevel.CRITICAL:
            title = "🚨 Critical PM2 Error"
        else:
            title = "❌ PM2 Error Detected"
        description = f"A {record.level.value} level error occurred in the {record.source} PM2 instance"
        
        fields = [
            field('Error Message', FormattingUtils.truncate(record.message, Settings.MAX_MESSAGE_FIELD_LENGTH)),
            field('Source', record.source, inline=True),
            field('Category', record.category or Settings.DEFAULT_CATEGORY, inline=True),
            field('Timestamp', record.timestamp.isoformat(), inline=True),
        ]
        if record.metadata:
            fields.append(field(
                'Metadata',
                FormattingUtils.format_json_block(record.metadata, Settings.MAX_METADATA_FIELD_LENGTH),
            ))
        
        return {
            'notification_type': NotificationType.ERROR,
            'title': title,
            'description': description,
            'fields': fields,
        }
    
    async def send_log_alert(self, record: LogRecord) -> bool:
        """
        Send a notification for an error or critical log record.
        
        Raises:
            NotificationError: If delivery fails
        """
        return await self.send_notification(**self.build_log_alert(record))
