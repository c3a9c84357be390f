"""Utilities module for pm2stream."""

from .time_utils import TimeUtils
from .formatting import FormattingUtils
from .log_setup import setup_logging

__all__ = ['TimeUtils', 'FormattingUtils', 'setup_logging']
