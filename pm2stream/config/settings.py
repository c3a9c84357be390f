"""
Settings management for pm2stream.

This module provides application-wide settings and constants.
"""

from dataclasses import dataclass


@dataclass
class Settings:
    """Application settings and constants."""
    
    # Application settings
    APP_NAME: str = "pm2stream"
    APP_VERSION: str = "0.1.0"
    
    # Default paths
    DEFAULT_CONFIG_PATH: str = "./pm2stream.yaml"
    DEFAULT_STORE_PATH: str = "./pm2stream-logs.jsonl"
    
    # Streamer settings
    DEFAULT_PROCESS_NAME: str = "modl-panel"
    DEFAULT_CATEGORY: str = "pm2"
    DEFAULT_CHUNK_SIZE: int = 4096
    PM2_TIMESTAMP_FORMAT: str = "%Y-%m-%d %H:%M:%S"
    
    # Reconnect settings
    DEFAULT_RECONNECT_BASE_DELAY: float = 1.0  # seconds
    DEFAULT_RECONNECT_MAX_DELAY: float = 30.0  # seconds
    DEFAULT_MAX_RECONNECT_ATTEMPTS: int = 5
    
    # Store settings
    DEFAULT_STORE_BACKEND: str = "jsonl"
    DEFAULT_MAX_STORE_ENTRIES: int = 10000
    DEFAULT_RECENT_LIMIT: int = 100
    
    # Notification settings
    DEFAULT_BOT_NAME: str = "MODL Admin"
    DEFAULT_WEBHOOK_TIMEOUT: float = 10.0  # seconds
    NOTIFICATION_FOOTER: str = "MODL Admin Notification System"
    MAX_MESSAGE_FIELD_LENGTH: int = 1000
    MAX_METADATA_FIELD_LENGTH: int = 500
    
    # Logging settings
    DEFAULT_LOG_LEVEL: str = "INFO"
    
    # Event bus
    LOG_EVENT: str = "log.new"
    DEFAULT_SUBSCRIPTION_QUEUE_SIZE: int = 1000
