
import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from rich.console import Console

from ...core.models import LogLevel, LogRecord
from ...main import create_streamer, load_config
from ...utils.formatting import FormattingUtils


async def _emit(config, level: LogLevel, message: str) -> Dict[str, Any]:
    streamer = create_streamer(config)
    record = LogRecord(
        timestamp=datetime.now(),
        level=level,
        message=message,
        source=streamer.process_name,
        category=config.streamer.category,
        metadata={
            'pm2Instance': streamer.process_name,
            'originalLine': message,
            'test': True,
        },
    )
    streamer.test_log_entry(record)
    await streamer.shutdown()
    return {
        'record': record,
        'notified': level.is_alert and streamer.notifier.is_configured(),
    }


def run_test_entry(config_path: Optional[Path] = None, cli_options: Optional[Dict[str, Any]] = None,
                   level: str = 'error', message: str = 'Test log entry',
                   console: Optional[Console] = None) -> int:
    """
    Push a synthetic record through the persist, publish and notify pipeline.
    """
    try:
        config = load_config(config_path, cli_options)
        result = asyncio.run(_emit(config, LogLevel(level.lower()), message))

        console = console or Console()
        console.print(FormattingUtils.format_record_line(result['record']), highlight=False)
        if result['notified']:
            console.print("Webhook notification dispatched")
        elif result['record'].level.is_alert:
            console.print("[yellow]No webhook configured, notification skipped[/yellow]")
        return 0

    except Exception as e:
        logging.error(f"Test entry error: {e}")
        return 1
