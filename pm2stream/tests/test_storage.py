"""
Tests for the log stores.
"""

import json
import pytest
from datetime import datetime

from pm2stream.config.config import Config
from pm2stream.core.exceptions import LogStoreError
from pm2stream.core.models import LogLevel, LogRecord
from pm2stream.storage.log_store import (
    JsonLinesLogStore,
    MemoryLogStore,
    create_log_store,
)


def make_record(message, minute=0, source='modl-panel', level=LogLevel.INFO):
    return LogRecord(
        timestamp=datetime(2024, 1, 1, 12, minute, 0),
        level=level,
        message=message,
        source=source,
        metadata={'pm2Instance': source, 'originalLine': message},
    )


class TestMemoryLogStore:
    """Tests for MemoryLogStore."""
    
    @pytest.mark.asyncio
    async def test_recent_newest_first(self):
        store = MemoryLogStore()
        await store.save(make_record("a", minute=1))
        await store.save(make_record("b", minute=3))
        await store.save(make_record("c", minute=2))
        
        documents = await store.recent('modl-panel', limit=10)
        
        assert [doc['message'] for doc in documents] == ['b', 'c', 'a']
        assert documents[0]['timestamp'] == '2024-01-01T12:03:00'
        assert documents[0]['resolved'] is False
        assert documents[0]['category'] == 'pm2'
    
    @pytest.mark.asyncio
    async def test_equal_timestamps_latest_write_first(self):
        store = MemoryLogStore()
        await store.save(make_record("first"))
        await store.save(make_record("second"))
        
        documents = await store.recent('modl-panel')
        
        assert [doc['message'] for doc in documents] == ['second', 'first']
    
    @pytest.mark.asyncio
    async def test_filters_by_source(self):
        store = MemoryLogStore()
        await store.save(make_record("mine"))
        await store.save(make_record("theirs", source='worker'))
        
        documents = await store.recent('worker')
        
        assert [doc['message'] for doc in documents] == ['theirs']
    
    @pytest.mark.asyncio
    async def test_bounded(self):
        store = MemoryLogStore(max_entries=2)
        for minute in range(4):
            await store.save(make_record(f"line {minute}", minute=minute))
        
        assert len(store) == 2
        documents = await store.recent('modl-panel')
        assert [doc['message'] for doc in documents] == ['line 3', 'line 2']


class TestJsonLinesLogStore:
    """Tests for JsonLinesLogStore."""
    
    @pytest.mark.asyncio
    async def test_append_and_read(self, tmp_path):
        path = tmp_path / "logs" / "pm2.jsonl"
        store = JsonLinesLogStore(path)
        await store.save(make_record("boot", minute=1))
        await store.save(make_record("[error] crash", minute=2, level=LogLevel.ERROR))
        
        lines = path.read_text().splitlines()
        assert len(lines) == 2
        assert json.loads(lines[1])['level'] == 'error'
        
        documents = await store.recent('modl-panel', limit=1)
        assert [doc['message'] for doc in documents] == ['[error] crash']
    
    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path):
        store = JsonLinesLogStore(tmp_path / "absent.jsonl")
        
        assert await store.recent('modl-panel') == []
    
    @pytest.mark.asyncio
    async def test_corrupt_lines_skipped(self, tmp_path, caplog):
        path = tmp_path / "pm2.jsonl"
        good = json.dumps(make_record("ok").to_dict())
        path.write_text(f"{good}\nnot json\n\n")
        
        documents = await JsonLinesLogStore(path).recent('modl-panel')
        
        assert [doc['message'] for doc in documents] == ['ok']
        assert "Skipping corrupt entry" in caplog.text
    
    @pytest.mark.asyncio
    async def test_write_failure_raises(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("")
        store = JsonLinesLogStore(blocker / "pm2.jsonl")
        
        with pytest.raises(LogStoreError):
            await store.save(make_record("lost"))
    
    @pytest.mark.asyncio
    async def test_documents_round_trip_to_records(self, tmp_path):
        store = JsonLinesLogStore(tmp_path / "pm2.jsonl")
        original = make_record("[warn] slow", level=LogLevel.WARNING)
        await store.save(original)
        
        documents = await store.recent('modl-panel')
        restored = LogRecord.from_dict(documents[0])
        
        assert restored.level == LogLevel.WARNING
        assert restored.timestamp == original.timestamp
        assert restored.original_line == "[warn] slow"


class TestCreateLogStore:
    """Tests for backend selection."""
    
    def test_memory_backend(self):
        config = Config()
        config.store.backend = 'memory'
        
        assert isinstance(create_log_store(config), MemoryLogStore)
    
    def test_jsonl_backend(self, tmp_path):
        config = Config()
        config.store.path = str(tmp_path / "pm2.jsonl")
        
        store = create_log_store(config)
        
        assert isinstance(store, JsonLinesLogStore)
        assert store.path == tmp_path / "pm2.jsonl"
    
    def test_unknown_backend(self):
        config = Config()
        config.store.backend = 'mongodb'
        
        with pytest.raises(ValueError):
            create_log_store(config)
