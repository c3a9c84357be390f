"""
Core data models for pm2stream.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict


class LogLevel(str, Enum):
    """
    Severity of a streamed log record.
    """
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"

    @property
    def is_alert(self) -> bool:
        """True for levels that trigger a webhook notification."""
        return self in (LogLevel.ERROR, LogLevel.CRITICAL)


@dataclass(frozen=True)
class LogRecord:
    """
    One structured line observed from the monitored process.
    """
    timestamp: datetime
    level: LogLevel
    message: str
    source: str
    category: str = "pm2"
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        # Accept plain strings so records built by callers stay valid
        if not isinstance(self.level, LogLevel):
            object.__setattr__(self, 'level', LogLevel(str(self.level).lower()))

    @property
    def original_line(self) -> str:
        return self.metadata.get('originalLine', self.message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the record to a store document.

        Returns:
            Dictionary with an ISO-8601 timestamp and an unresolved flag
        """
        return {
            'timestamp': self.timestamp.isoformat(),
            'level': self.level.value,
            'message': self.message,
            'source': self.source,
            'category': self.category,
            'metadata': dict(self.metadata),
            'resolved': False,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LogRecord':
        """
        Create a LogRecord from a store document or an API payload.

        Args:
            data: Dictionary with at least ``level``, ``message`` and ``source``

        Returns:
            LogRecord instance
        """
        timestamp = data.get('timestamp')
        if isinstance(timestamp, str):
            timestamp = datetime.fromisoformat(timestamp)
        elif timestamp is None:
            timestamp = datetime.now()

        return cls(
            timestamp=timestamp,
            level=LogLevel(str(data.get('level', 'info')).lower()),
            message=data['message'],
            source=data['source'],
            category=data.get('category') or 'pm2',
            metadata=dict(data.get('metadata') or {}),
        )
