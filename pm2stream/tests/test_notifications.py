"""
Tests for the Discord webhook notifier.
"""

import json
import httpx
import pytest
from datetime import datetime

from pm2stream.config.config import Config
from pm2stream.core.exceptions import NotificationError
from pm2stream.core.models import LogLevel, LogRecord
from pm2stream.notifications.discord import (
    DiscordWebhookNotifier,
    EMBED_COLORS,
    NotificationType,
)


WEBHOOK_URL = "https://discord.example/api/webhooks/1/token"


class RecordingTransport:
    """Collects webhook requests and answers with a fixed status."""
    
    def __init__(self, status_code=204):
        self.status_code = status_code
        self.requests = []
        self.transport = httpx.MockTransport(self.handle)
    
    def handle(self, request):
        self.requests.append(request)
        return httpx.Response(self.status_code, text="" if self.status_code < 400 else "bad webhook")
    
    @property
    def payloads(self):
        return [json.loads(request.content) for request in self.requests]


@pytest.fixture
def webhook_config():
    config = Config()
    config.notifications.discord_webhook_url = WEBHOOK_URL
    config.notifications.discord_admin_role_id = "1234"
    return config


def error_record(level=LogLevel.ERROR, message="Database connection failed"):
    return LogRecord(
        timestamp=datetime(2024, 1, 1, 12, 0, 0),
        level=level,
        message=message,
        source='modl-panel',
        metadata={'pm2Instance': 'modl-panel', 'originalLine': message},
    )


class TestConfiguration:
    """Tests for webhook configuration handling."""
    
    def test_unconfigured(self):
        assert DiscordWebhookNotifier(Config()).is_configured() is False
    
    def test_configured_from_environment(self, monkeypatch):
        monkeypatch.setenv('DISCORD_WEBHOOK_URL', WEBHOOK_URL)
        
        notifier = DiscordWebhookNotifier(Config())
        
        assert notifier.is_configured()
        assert notifier.webhook_url == WEBHOOK_URL
    
    def test_update_config_from_panel(self):
        notifier = DiscordWebhookNotifier(Config())
        
        notifier.update_config({
            'enabled': True,
            'discordWebhookUrl': WEBHOOK_URL,
            'discordAdminRoleId': '42',
            'botName': 'Panel Bot',
        })
        
        assert notifier.is_configured()
        assert notifier.admin_role_id == '42'
        assert notifier.bot_name == 'Panel Bot'
    
    def test_disabled_panel_settings_fall_back(self, webhook_config):
        notifier = DiscordWebhookNotifier(webhook_config)
        notifier.update_config({'enabled': True, 'discordWebhookUrl': 'https://other.example/hook'})
        
        notifier.update_config({'enabled': False, 'discordWebhookUrl': 'https://other.example/hook'})
        
        assert notifier.webhook_url == WEBHOOK_URL
        assert notifier.bot_name == 'MODL Admin'


class TestPayload:
    """Tests for webhook payload construction."""
    
    def test_error_payload_pings_admin_role(self, webhook_config):
        notifier = DiscordWebhookNotifier(webhook_config)
        
        payload = notifier.build_payload(NotificationType.ERROR, "Title", "Description")
        
        assert payload['username'] == 'MODL Admin'
        assert payload['content'] == "<@&1234> Critical notification!"
        embed = payload['embeds'][0]
        assert embed['color'] == EMBED_COLORS[NotificationType.ERROR]
        assert embed['footer'] == {'text': 'MODL Admin Notification System'}
        assert 'fields' not in embed
        assert 'avatar_url' not in payload
    
    def test_rate_limit_does_not_ping(self, webhook_config):
        notifier = DiscordWebhookNotifier(webhook_config)
        
        payload = notifier.build_payload(NotificationType.RATE_LIMIT, "Slow down", "Too many requests",
                                         additional_content="heads up")
        
        assert payload['content'] == "heads up"
    
    def test_log_alert_fields(self, webhook_config):
        notifier = DiscordWebhookNotifier(webhook_config)
        
        alert = notifier.build_log_alert(error_record())
        
        assert alert['title'] == "❌ PM2 Error Detected"
        assert alert['description'] == "A error level error occurred in the modl-panel PM2 instance"
        names = [f['name'] for f in alert['fields']]
        assert names == ['Error Message', 'Source', 'Category', 'Timestamp', 'Metadata']
        assert alert['fields'][3]['value'] == '2024-01-01T12:00:00'
        assert alert['fields'][4]['value'].startswith("```json\n")
    
    def test_critical_title(self, webhook_config):
        notifier = DiscordWebhookNotifier(webhook_config)
        
        alert = notifier.build_log_alert(error_record(level=LogLevel.CRITICAL))
        
        assert alert['title'] == "🚨 Critical PM2 Error"
    
    def test_long_message_truncated(self, webhook_config):
        notifier = DiscordWebhookNotifier(webhook_config)
        
        alert = notifier.build_log_alert(error_record(message="x" * 1500))
        
        assert alert['fields'][0]['value'] == "x" * 1000 + "..."


class TestDelivery:
    """Tests for posting to the webhook."""
    
    @pytest.mark.asyncio
    async def test_send_log_alert(self, webhook_config):
        recorder = RecordingTransport()
        notifier = DiscordWebhookNotifier(webhook_config, transport=recorder.transport)
        
        assert await notifier.send_log_alert(error_record()) is True
        
        assert len(recorder.requests) == 1
        assert str(recorder.requests[0].url) == WEBHOOK_URL
        payload = recorder.payloads[0]
        assert payload['embeds'][0]['title'] == "❌ PM2 Error Detected"
        assert payload['content'].startswith("<@&1234>")
    
    @pytest.mark.asyncio
    async def test_unconfigured_sends_nothing(self):
        recorder = RecordingTransport()
        notifier = DiscordWebhookNotifier(Config(), transport=recorder.transport)
        
        assert await notifier.send_log_alert(error_record()) is False
        assert recorder.requests == []
    
    @pytest.mark.asyncio
    async def test_rejected_request_raises(self, webhook_config):
        recorder = RecordingTransport(status_code=500)
        notifier = DiscordWebhookNotifier(webhook_config, transport=recorder.transport)
        
        with pytest.raises(NotificationError, match="500"):
            await notifier.send_log_alert(error_record())
    
    @pytest.mark.asyncio
    async def test_transport_error_raises(self, webhook_config):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)
        
        notifier = DiscordWebhookNotifier(webhook_config, transport=httpx.MockTransport(refuse))
        
        with pytest.raises(NotificationError, match="request failed"):
            await notifier.send_notification(NotificationType.ERROR, "Title", "Description")
