"""
Log store module for pm2stream.

Stores are append-only document collections queried by source, newest first.
Two backends are provided: a bounded in-memory store and an append-only
JSON-lines file.
"""

import asyncio
import collections
import json
import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterable, List

from ..core.exceptions import LogStoreError
from ..core.models import LogRecord


def _newest_first(documents: Iterable[Dict[str, Any]], source: str, limit: int) -> List[Dict[str, Any]]:
    # Ties keep the most recently written document first
    matching = [(doc.get('timestamp') or '', index, doc)
                for index, doc in enumerate(documents) if doc.get('source') == source]
    matching.sort(key=lambda item: (item[0], item[1]), reverse=True)
    return [doc for _, _, doc in matching[:max(limit, 0)]]


class LogStore(ABC):
    """
    Abstract base class for persisted log stores.
    """
    
    def __init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)
    
    @abstractmethod
    async def save(self, record: LogRecord) -> None:
        """
        Append a record to the store.
        
        Raises:
            LogStoreError: If the write fails
        """
    
    @abstractmethod
    async def recent(self, source: str, limit: int = 100) -> List[Dict[str, Any]]:
        """
        Return the most recent documents for a source, newest first.
        
        Raises:
            LogStoreError: If the read fails
        """
    
    def close(self):
        """Release any held resources."""
        pass


class MemoryLogStore(LogStore):
    """Thread-safe in-memory log storage backed by a bounded deque."""
    
    def __init__(self, max_entries: int = 10000):
        super().__init__()
        self._documents = collections.deque(maxlen=max_entries)
        self._lock = threading.Lock()
    
    async def save(self, record: LogRecord) -> None:
        with self._lock:
            self._documents.append(record.to_dict())
    
    async def recent(self, source: str, limit: int = 100) -> List[Dict[str, Any]]:
        with self._lock:
            documents = list(self._documents)
        return _newest_first(documents, source, limit)
    
    def __len__(self):
        return len(self._documents)


class JsonLinesLogStore(LogStore):
    """Append-only JSON-lines file with thread-safe access."""
    
    def __init__(self, path: Path):
        super().__init__()
        self.path = Path(path)
        self._lock = threading.Lock()
    
    async def save(self, record: LogRecord) -> None:
        line = json.dumps(record.to_dict(), default=str)
        await asyncio.to_thread(self._append, line)
    
    async def recent(self, source: str, limit: int = 100) -> List[Dict[str, Any]]:
        documents = await asyncio.to_thread(self._read_all)
        return _newest_first(documents, source, limit)
    
    def _append(self, line: str):
        try:
            with self._lock:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with open(self.path, 'a', encoding='utf-8') as f:
                    f.write(line + '\n')
        except OSError as e:
            raise LogStoreError(f"Failed to write to {self.path}: {e}") from e
    
    def _read_all(self) -> List[Dict[str, Any]]:
        if not self.path.exists():
            return []
        
        documents = []
        try:
            with self._lock:
                with open(self.path, 'r', encoding='utf-8') as f:
                    lines = f.readlines()
        except OSError as e:
            raise LogStoreError(f"Failed to read {self.path}: {e}") from e
        
        for line_num, line in enumerate(lines, 1):
            if not line.strip():
                continue
            try:
                documents.append(json.loads(line))
            except json.JSONDecodeError:
                self.logger.warning(f"Skipping corrupt entry at {self.path}:{line_num}")
        return documents


def create_log_store(config) -> LogStore:
    """
    Create the log store selected by configuration.
    
    Args:
        config: Application configuration
        
    Returns:
        LogStore instance
    """
    store_config = config.store
    if store_config.backend == 'memory':
        return MemoryLogStore(max_entries=store_config.max_entries)
    if store_config.backend == 'jsonl':
        return JsonLinesLogStore(Path(store_config.path))
    raise ValueError(f"Unknown store backend: {store_config.backend}")
