"""Log storage module for pm2stream."""

from .log_store import LogStore, MemoryLogStore, JsonLinesLogStore, create_log_store

__all__ = ['LogStore', 'MemoryLogStore', 'JsonLinesLogStore', 'create_log_store']
