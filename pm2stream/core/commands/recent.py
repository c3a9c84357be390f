
import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ...main import create_streamer, load_config
from ...utils.formatting import FormattingUtils
from ...utils.time_utils import TimeUtils


async def _fetch_recent(config, limit: int):
    streamer = create_streamer(config)
    try:
        return await streamer.get_recent_logs(limit)
    finally:
        streamer.store.close()


def run_recent(config_path: Optional[Path] = None, cli_options: Optional[Dict[str, Any]] = None,
               limit: int = 20, output_format: str = 'text',
               console: Optional[Console] = None) -> int:
    """
    Show the most recent persisted records of the monitored process.
    """
    try:
        config = load_config(config_path, cli_options)
        documents = asyncio.run(_fetch_recent(config, limit))

        console = console or Console()
        if output_format == 'json':
            console.print_json(json.dumps(documents, default=str))
            return 0

        if not documents:
            console.print(f"No logs stored for {config.streamer.process_name}")
            return 0

        table = Table(title=f"Recent logs: {config.streamer.process_name}")
        table.add_column("Timestamp", style="dim", no_wrap=True)
        table.add_column("Level")
        table.add_column("Message")
        for doc in documents:
            table.add_row(
                TimeUtils.format_timestamp(doc['timestamp']),
                FormattingUtils.format_level(doc.get('level', 'info')),
                escape(doc.get('message', '')),
            )
        console.print(table)
        return 0

    except Exception as e:
        logging.error(f"Recent logs error: {e}")
        return 1
