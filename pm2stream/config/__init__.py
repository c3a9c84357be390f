"""Configuration module for pm2stream."""

from .config import Config
from .settings import Settings

__all__ = ['Config', 'Settings']
