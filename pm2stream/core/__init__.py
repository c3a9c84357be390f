"""Core functionality module for pm2stream."""

from .models import LogLevel, LogRecord
from .event_bus import EventBus
from .process_source import PM2ProcessSource
from .streamer import ProcessLogStreamer

__all__ = ['LogLevel', 'LogRecord', 'EventBus', 'PM2ProcessSource', 'ProcessLogStreamer']
