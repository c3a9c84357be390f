"""
Log parser module for pm2stream.

This module turns raw lines emitted by ``pm2 logs --raw --timestamp`` into
structured LogRecord objects. Parsing is a pure function of the raw line
(apart from the capture time used when the line carries no timestamp).
"""

import re
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from .base_parser import BaseParser
from ..config.settings import Settings
from ..core.models import LogLevel, LogRecord
from ..utils.time_utils import TimeUtils


# "2024-01-01 12:00:00: [level] message"
TIMESTAMP_PREFIX = re.compile(r'^(\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}):\s*(.+)$')
LEVEL_TOKEN = re.compile(r'^\[(info|warn|warning|error|critical|debug)\]', re.IGNORECASE)

TOKEN_LEVELS = {
    'info': LogLevel.INFO,
    'debug': LogLevel.INFO,
    'warn': LogLevel.WARNING,
    'warning': LogLevel.WARNING,
    'error': LogLevel.ERROR,
    'critical': LogLevel.CRITICAL,
}

# Checked in order, first match wins
KEYWORD_LEVELS = [
    (re.compile(r'critical|fatal', re.IGNORECASE), LogLevel.CRITICAL),
    (re.compile(r'error|exception|fail', re.IGNORECASE), LogLevel.ERROR),
    (re.compile(r'warn', re.IGNORECASE), LogLevel.WARNING),
]


def split_chunk(data: Union[bytes, str]) -> List[str]:
    """
    Split one chunk of process output into its non-blank lines.
    
    Args:
        data: Raw chunk as read from the process pipe
        
    Returns:
        Lines in emission order, terminators removed
    """
    if isinstance(data, bytes):
        data = data.decode('utf-8', errors='replace')
    return [line.rstrip('\r') for line in data.split('\n') if line.strip()]


class PM2LogParser(BaseParser):
    """
    Parser for PM2 process log lines.
    """
    
    def __init__(self, config=None, source: Optional[str] = None, category: Optional[str] = None):
        """
        Initialize the PM2 log parser.
        
        Args:
            config: Application configuration
            source: Identifier of the monitored process (defaults to config)
            category: Tag for this ingestion path (defaults to config)
        """
        super().__init__(config)
        streamer_config = getattr(config, 'streamer', None)
        self.source = source or getattr(streamer_config, 'process_name', Settings.DEFAULT_PROCESS_NAME)
        self.category = category or getattr(streamer_config, 'category', Settings.DEFAULT_CATEGORY)
    
    def parse_line(self, line: str, default_level: LogLevel = LogLevel.INFO) -> LogRecord:
        """
        Parse a single log line into a LogRecord.
        
        An explicit bracketed level token always wins. Keyword inference only
        runs when there is no token and the level is still ``info``.
        
        Args:
            line: Raw log line
            default_level: Level used before token and keyword detection
            
        Returns:
            Parsed LogRecord
        """
        timestamp = None
        content = line
        
        timestamp_match = TIMESTAMP_PREFIX.match(line)
        if timestamp_match:
            timestamp = TimeUtils.parse_timestamp(timestamp_match.group(1), Settings.PM2_TIMESTAMP_FORMAT)
            if timestamp is not None:
                content = timestamp_match.group(2)
        if timestamp is None:
            timestamp = datetime.now()
        
        level = LogLevel(default_level)
        level_match = LEVEL_TOKEN.match(content)
        if level_match:
            level = TOKEN_LEVELS[level_match.group(1).lower()]
            content = content[level_match.end():].strip()
        
        if level_match is None and level == LogLevel.INFO:
            for pattern, inferred in KEYWORD_LEVELS:
                if pattern.search(content):
                    level = inferred
                    break
        
        message = content.strip() or line.strip()
        
        return LogRecord(
            timestamp=timestamp,
            level=level,
            message=message,
            source=self.source,
            category=self.category,
            metadata={
                'pm2Instance': self.source,
                'originalLine': line,
            },
        )
    
    def parse_text(self, text: str, default_level: LogLevel = LogLevel.INFO) -> List[LogRecord]:
        """
        Parse every non-blank line of a block of text.
        
        Args:
            text: Text containing one log line per row
            default_level: Level used before token and keyword detection
            
        Returns:
            Parsed records in input order
        """
        return [self.parse_line(line, default_level) for line in split_chunk(text)]
    
    def parse(self, source: str) -> Dict[str, Any]:
        """
        Parse a captured PM2 log file.
        
        Args:
            source: Path to the log file
            
        Returns:
            Dictionary with parsed records, or empty dict if the file is unreadable
        """
        if not self.validate_source(source):
            return {}
        
        content = self.read_file(source)
        if content is None:
            return {}
        
        records = self.parse_text(content)
        level_counts = {level.value: 0 for level in LogLevel}
        for record in records:
            level_counts[record.level.value] += 1
        
        return {
            'source': source,
            'parsed_lines': len(records),
            'records': records,
            'level_counts': level_counts,
            'parsed_at': datetime.now().isoformat(),
        }
