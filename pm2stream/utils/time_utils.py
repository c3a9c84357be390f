"""
Time utilities module for pm2stream.

Helpers for the timestamps PM2 prefixes to log lines, for display of stored
ISO-8601 timestamps and for reconnect delays in log messages.
"""

from datetime import datetime
from typing import Optional, Union
import logging

from ..config.settings import Settings


class TimeUtils:
    """
    Utility class for time operations.
    """

    logger = logging.getLogger(__name__)

    @staticmethod
    def format_timestamp(timestamp: Union[datetime, str],
                         format_str: str = Settings.PM2_TIMESTAMP_FORMAT) -> str:
        """
        Format a record timestamp for display.

        Args:
            timestamp: datetime or ISO-8601 string as stored in documents
            format_str: strftime format for output

        Returns:
            Formatted timestamp, or the input string if it is not ISO-8601
        """
        if isinstance(timestamp, str):
            try:
                timestamp = datetime.fromisoformat(timestamp)
            except ValueError:
                return timestamp
        return timestamp.strftime(format_str)

    @staticmethod
    def parse_timestamp(timestamp_str: str,
                        format_str: str = Settings.PM2_TIMESTAMP_FORMAT) -> Optional[datetime]:
        """
        Parse a log line timestamp.

        Returns:
            Parsed datetime, or None when the text is not a valid date
        """
        try:
            return datetime.strptime(timestamp_str, format_str)
        except ValueError:
            TimeUtils.logger.debug(f"Timestamp {timestamp_str!r} does not match {format_str}")
            return None

    @staticmethod
    def format_duration(seconds: float) -> str:
        """Format a delay such as ``500ms``, ``2s`` or ``1m 30s``."""
        if seconds < 1:
            return f"{int(seconds * 1000)}ms"
        if seconds < 60:
            return f"{seconds:g}s"
        minutes, secs = divmod(int(seconds), 60)
        return f"{minutes}m {secs}s"
