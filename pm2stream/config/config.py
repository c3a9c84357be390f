"""
Configuration management for pm2stream.

This module provides classes and methods for loading, validating,
and managing application configuration with CLI integration support.
"""

import yaml
import os
from pathlib import Path
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, asdict, field

from .settings import Settings
from ..core.exceptions import ConfigError


def _default_command() -> List[str]:
    return ["pm2", "logs", "{process}", "--raw", "--timestamp"]


@dataclass
class StreamerConfig:
    """Configuration for the process log streamer."""
    enabled: bool = True
    process_name: str = Settings.DEFAULT_PROCESS_NAME
    command: List[str] = field(default_factory=_default_command)
    category: str = Settings.DEFAULT_CATEGORY
    chunk_size: int = Settings.DEFAULT_CHUNK_SIZE

    def build_command(self) -> List[str]:
        """Return the attach command with the process name filled in."""
        return [part.replace('{process}', self.process_name) for part in self.command]


@dataclass
class ReconnectConfig:
    """Configuration for reconnect backoff."""
    base_delay: float = Settings.DEFAULT_RECONNECT_BASE_DELAY  # seconds
    max_delay: float = Settings.DEFAULT_RECONNECT_MAX_DELAY  # seconds
    max_attempts: int = Settings.DEFAULT_MAX_RECONNECT_ATTEMPTS


@dataclass
class StoreConfig:
    """Configuration for the persisted log store."""
    backend: str = Settings.DEFAULT_STORE_BACKEND
    path: str = Settings.DEFAULT_STORE_PATH
    max_entries: int = Settings.DEFAULT_MAX_STORE_ENTRIES


@dataclass
class NotificationConfig:
    """Configuration for the Discord webhook notifier."""
    discord_webhook_url: Optional[str] = None
    discord_admin_role_id: Optional[str] = None
    bot_name: str = Settings.DEFAULT_BOT_NAME
    avatar_url: str = ""
    timeout: float = Settings.DEFAULT_WEBHOOK_TIMEOUT  # seconds


@dataclass
class LoggingConfig:
    """Configuration for logging."""
    level: str = Settings.DEFAULT_LOG_LEVEL
    file: Optional[str] = None


SECTIONS = {
    'streamer': StreamerConfig,
    'reconnect': ReconnectConfig,
    'store': StoreConfig,
    'notifications': NotificationConfig,
    'logging': LoggingConfig,
}


@dataclass
class Config:
    """Main configuration class for pm2stream."""
    streamer: StreamerConfig = field(default_factory=StreamerConfig)
    reconnect: ReconnectConfig = field(default_factory=ReconnectConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def __post_init__(self):
        # Environment variable overrides
        if os.getenv('PM2_LOGGING_ENABLED'):
            self.streamer.enabled = os.getenv('PM2_LOGGING_ENABLED') != 'false'
        if os.getenv('PM2STREAM_PROCESS'):
            self.streamer.process_name = os.getenv('PM2STREAM_PROCESS')
        if os.getenv('PM2STREAM_LOG_LEVEL'):
            self.logging.level = os.getenv('PM2STREAM_LOG_LEVEL')
        if os.getenv('DISCORD_WEBHOOK_URL') and not self.notifications.discord_webhook_url:
            self.notifications.discord_webhook_url = os.getenv('DISCORD_WEBHOOK_URL')
        if os.getenv('DISCORD_ADMIN_ROLE_ID') and not self.notifications.discord_admin_role_id:
            self.notifications.discord_admin_role_id = os.getenv('DISCORD_ADMIN_ROLE_ID')

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> 'Config':
        """
        Load configuration from a YAML file or return default configuration.
        
        Args:
            config_path: Path to configuration file
            
        Returns:
            Config instance
            
        Raises:
            ConfigError: If the file exists but is not valid YAML
        """
        # Check for config path in environment if not provided
        if not config_path:
            env_config_path = os.getenv('PM2STREAM_CONFIG')
            if env_config_path:
                config_path = Path(env_config_path)
        
        if config_path and config_path.exists():
            try:
                with open(config_path, 'r') as f:
                    data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid configuration file {config_path}: {e}") from e
            if data is None:
                data = {}
            return cls.from_dict(data)
        else:
            # Return default configuration
            return cls()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Config':
        """
        Create Config instance from dictionary.
        
        Args:
            data: Configuration dictionary
            
        Returns:
            Config instance
            
        Raises:
            ConfigError: If a section contains unknown options
        """
        config_data = {}
        for name, section_class in SECTIONS.items():
            section_data = data.get(name)
            if isinstance(section_data, dict):
                try:
                    config_data[name] = section_class(**section_data)
                except TypeError as e:
                    raise ConfigError(f"Invalid options in section '{name}': {e}") from e
            else:
                config_data[name] = section_class()
        
        return cls(**config_data)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert Config instance to dictionary.
        
        Returns:
            Configuration dictionary
        """
        return asdict(self)

    @classmethod
    def get_default_config_dict(cls) -> Dict[str, Any]:
        """Return the default configuration as a dictionary, ignoring the environment."""
        return {name: asdict(section_class()) for name, section_class in SECTIONS.items()}

    def save(self, config_path: Path) -> None:
        """
        Save configuration to a YAML file.
        
        Args:
            config_path: Path to save configuration file
        """
        with open(config_path, 'w') as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False)

    def validate(self) -> List[str]:
        """
        Validate the configuration and return a list of errors.
        
        Returns:
            List of validation errors, empty if valid
        """
        errors = []
        
        # Validate streamer settings
        if not self.streamer.process_name:
            errors.append("Streamer process name must not be empty")
        if not self.streamer.command:
            errors.append("Streamer command must not be empty")
        if self.streamer.chunk_size <= 0:
            errors.append("Streamer chunk size must be positive")
        
        # Validate reconnect settings
        if self.reconnect.base_delay <= 0:
            errors.append("Reconnect base delay must be positive")
        if self.reconnect.max_delay < self.reconnect.base_delay:
            errors.append("Reconnect max delay must not be lower than the base delay")
        if self.reconnect.max_attempts < 0:
            errors.append("Reconnect max attempts must not be negative")
        
        # Validate store settings
        valid_backends = ['jsonl', 'memory']
        if self.store.backend not in valid_backends:
            errors.append(f"Invalid store backend: {self.store.backend}. Valid values: {', '.join(valid_backends)}")
        if self.store.backend == 'jsonl' and not self.store.path:
            errors.append("Store path is required for the jsonl backend")
        if self.store.max_entries <= 0:
            errors.append("Store max entries must be positive")
        
        # Validate notification settings
        url = self.notifications.discord_webhook_url
        if url and not url.startswith(('http://', 'https://')):
            errors.append(f"Discord webhook URL must be an http(s) URL: {url}")
        if self.notifications.timeout <= 0:
            errors.append("Notification timeout must be positive")
        
        # Validate logging level
        valid_log_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if self.logging.level.upper() not in valid_log_levels:
            errors.append(f"Invalid logging level: {self.logging.level}. Valid values: {', '.join(valid_log_levels)}")
        
        return errors

    def get_env_overrides(self) -> Dict[str, Any]:
        """
        Get configuration values that are overridden by environment variables.
        
        Returns:
            Dictionary of environment variable overrides
        """
        overrides = {}
        
        if os.getenv('PM2_LOGGING_ENABLED'):
            overrides['streamer.enabled'] = os.getenv('PM2_LOGGING_ENABLED') != 'false'
        if os.getenv('PM2STREAM_PROCESS'):
            overrides['streamer.process_name'] = os.getenv('PM2STREAM_PROCESS')
        if os.getenv('PM2STREAM_LOG_LEVEL'):
            overrides['logging.level'] = os.getenv('PM2STREAM_LOG_LEVEL')
        if os.getenv('DISCORD_WEBHOOK_URL'):
            overrides['notifications.discord_webhook_url'] = os.getenv('DISCORD_WEBHOOK_URL')
        if os.getenv('DISCORD_ADMIN_ROLE_ID'):
            overrides['notifications.discord_admin_role_id'] = os.getenv('DISCORD_ADMIN_ROLE_ID')
        
        return overrides

    def apply_cli_overrides(self, cli_options: Dict[str, Any]) -> None:
        """
        Apply command-line interface options as overrides to the configuration.
        
        Args:
            cli_options: Dictionary of CLI options to apply
        """
        if cli_options.get('process_name'):
            self.streamer.process_name = cli_options['process_name']
        if cli_options.get('store_path'):
            self.store.path = cli_options['store_path']
        if cli_options.get('store_backend'):
            self.store.backend = cli_options['store_backend']
        if cli_options.get('webhook_url'):
            self.notifications.discord_webhook_url = cli_options['webhook_url']
        if cli_options.get('log_level'):
            self.logging.level = cli_options['log_level']
