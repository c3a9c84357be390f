"""
Tests for the PM2 log line parser.
"""

import pytest
from datetime import datetime

from pm2stream.core.models import LogLevel
from pm2stream.parsers.log_parser import PM2LogParser, split_chunk


@pytest.fixture
def parser(sample_config):
    return PM2LogParser(sample_config)


class TestParseLine:
    """Tests for PM2LogParser.parse_line."""
    
    def test_timestamp_token_and_message(self, parser):
        line = "2024-01-01 12:00:00: [ERROR] Database connection failed"
        record = parser.parse_line(line)
        
        assert record.timestamp == datetime(2024, 1, 1, 12, 0, 0)
        assert record.level == LogLevel.ERROR
        assert record.message == "Database connection failed"
    
    def test_keyword_inferred_error(self, parser):
        record = parser.parse_line("Unexpected exception in handler")
        
        assert record.level == LogLevel.ERROR
        assert record.message == "Unexpected exception in handler"
    
    def test_timestamp_prefix_removed_from_message(self, parser):
        record = parser.parse_line("2023-06-15 08:30:45: server listening on port 3000")
        
        assert record.timestamp == datetime(2023, 6, 15, 8, 30, 45)
        assert "2023-06-15" not in record.message
        assert record.message == "server listening on port 3000"
    
    def test_missing_timestamp_uses_capture_time(self, parser):
        before = datetime.now()
        record = parser.parse_line("plain line")
        after = datetime.now()
        
        assert before <= record.timestamp <= after
    
    def test_invalid_timestamp_kept_in_message(self, parser):
        record = parser.parse_line("2024-13-45 99:00:00: odd line")
        
        assert record.message == "2024-13-45 99:00:00: odd line"
    
    def test_explicit_token_beats_keywords(self, parser):
        record = parser.parse_line("[info] this is an error")
        
        assert record.level == LogLevel.INFO
        assert record.message == "this is an error"
    
    @pytest.mark.parametrize("token,expected", [
        ("info", LogLevel.INFO),
        ("debug", LogLevel.INFO),
        ("warn", LogLevel.WARNING),
        ("WARNING", LogLevel.WARNING),
        ("Error", LogLevel.ERROR),
        ("CRITICAL", LogLevel.CRITICAL),
    ])
    def test_level_token_mapping(self, parser, token, expected):
        record = parser.parse_line(f"[{token}] status report")
        
        assert record.level == expected
        assert record.message == "status report"
    
    def test_critical_keyword_beats_warning(self, parser):
        record = parser.parse_line("warning: disk usage critical")
        
        assert record.level == LogLevel.CRITICAL
    
    def test_fatal_keyword(self, parser):
        assert parser.parse_line("Fatal: out of memory").level == LogLevel.CRITICAL
    
    def test_error_keyword_beats_warning(self, parser):
        assert parser.parse_line("warn: request failed").level == LogLevel.ERROR
    
    def test_warn_keyword(self, parser):
        assert parser.parse_line("Deprecation WARNING for option").level == LogLevel.WARNING
    
    def test_fail_keyword_misclassifies_benign_line(self, parser):
        assert parser.parse_line("failover test succeeded").level == LogLevel.ERROR
    
    def test_default_level_applies_without_token(self, parser):
        record = parser.parse_line("some output", default_level=LogLevel.ERROR)
        
        assert record.level == LogLevel.ERROR
    
    def test_token_overrides_default_level(self, parser):
        record = parser.parse_line("[warn] slow query", default_level=LogLevel.ERROR)
        
        assert record.level == LogLevel.WARNING
    
    def test_metadata_keeps_original_line(self, parser):
        line = "2024-01-01 12:00:00: [warn]   spaced   "
        record = parser.parse_line(line)
        
        assert record.metadata['originalLine'] == line
        assert record.metadata['pm2Instance'] == 'modl-panel'
        assert record.message == "spaced"
        assert record.source == 'modl-panel'
        assert record.category == 'pm2'
    
    def test_message_never_empty(self, parser):
        record = parser.parse_line("[error]")
        
        assert record.level == LogLevel.ERROR
        assert record.message == "[error]"
    
    def test_source_from_config(self, sample_config):
        sample_config.streamer.process_name = 'api-server'
        record = PM2LogParser(sample_config).parse_line("hello")
        
        assert record.source == 'api-server'
        assert record.metadata['pm2Instance'] == 'api-server'


class TestSplitChunk:
    """Tests for chunk splitting."""
    
    def test_splits_and_drops_blank_lines(self):
        assert split_chunk(b"one\n\n  \ntwo\r\nthree") == ["one", "two", "three"]
    
    def test_accepts_text(self):
        assert split_chunk("a\nb\n") == ["a", "b"]


class TestParseFile:
    """Tests for parsing captured log files."""
    
    def test_parse_file(self, parser, tmp_path):
        log_file = tmp_path / "captured.log"
        log_file.write_text(
            "2024-01-01 12:00:00: [info] started\n"
            "2024-01-01 12:00:01: [ERROR] Database connection failed\n"
            "\n"
            "2024-01-01 12:00:02: memory warning\n"
        )
        
        result = parser.parse(str(log_file))
        
        assert result['parsed_lines'] == 3
        assert [r.level for r in result['records']] == [LogLevel.INFO, LogLevel.ERROR, LogLevel.WARNING]
        assert result['level_counts'] == {'info': 1, 'warning': 1, 'error': 1, 'critical': 0}
    
    def test_parse_missing_file(self, parser):
        assert parser.parse("/nonexistent/file.log") == {}
