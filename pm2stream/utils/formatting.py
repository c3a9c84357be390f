"""
Formatting utilities module for pm2stream.

This module provides common formatting functions used by the CLI and the
webhook notifier.
"""

from typing import Any, Dict, Mapping
import json
import logging

from rich.markup import escape

from ..core.models import LogLevel, LogRecord
from .time_utils import TimeUtils


class FormattingUtils:
    """
    Utility class for formatting operations.
    """
    
    logger = logging.getLogger(__name__)
    
    LEVEL_STYLES = {
        LogLevel.INFO: 'blue',
        LogLevel.WARNING: 'yellow',
        LogLevel.ERROR: 'red',
        LogLevel.CRITICAL: 'bold red',
    }
    
    @staticmethod
    def format_level(level: str) -> str:
        """
        Format a log level as rich markup.
        
        Args:
            level: Level value such as ``"error"``
            
        Returns:
            Markup string, e.g. ``"[red]ERROR[/red]"``
        """
        try:
            style = FormattingUtils.LEVEL_STYLES[LogLevel(str(level).lower())]
        except ValueError:
            style = 'white'
        return f"[{style}]{str(level).upper()}[/{style}]"
    
    @staticmethod
    def truncate(text: str, max_length: int, suffix: str = "...") -> str:
        """
        Cut text to at most ``max_length`` characters plus a suffix.
        
        Args:
            text: Text to shorten
            max_length: Number of characters to keep
            suffix: Marker appended when text was cut
            
        Returns:
            The original text, or its first ``max_length`` characters plus suffix
        """
        if len(text) <= max_length:
            return text
        return f"{text[:max_length]}{suffix}"
    
    @staticmethod
    def format_json_block(data: Mapping[str, Any], max_length: int) -> str:
        """
        Render a mapping as a fenced JSON code block for chat messages.
        
        Args:
            data: Mapping to render
            max_length: Maximum JSON length before truncation
            
        Returns:
            Markdown code block
        """
        text = json.dumps(data, indent=2, default=str)
        return f"```json\n{FormattingUtils.truncate(text, max_length)}\n```"
    
    @staticmethod
    def format_record_line(record: LogRecord) -> str:
        """
        Format a record as one line of rich markup for console output.
        
        Args:
            record: Log record to format
            
        Returns:
            Markup line with timestamp, level and message
        """
        timestamp = TimeUtils.format_timestamp(record.timestamp)
        return f"[dim]{timestamp}[/dim] {FormattingUtils.format_level(record.level.value)} {escape(record.message)}"
    
    @staticmethod
    def format_status(status: Dict[str, Any]) -> str:
        """
        Format a streamer status snapshot for display.
        
        Args:
            status: Dictionary returned by ``ProcessLogStreamer.get_status``
            
        Returns:
            Human-readable status summary
        """
        enabled = "[green]enabled[/green]" if status.get('enabled') else "[red]disabled[/red]"
        streaming = "[green]streaming[/green]" if status.get('streaming') else "[yellow]idle[/yellow]"
        return f"{enabled}, {streaming}, reconnect attempts: {status.get('reconnect_attempts', 0)}"
