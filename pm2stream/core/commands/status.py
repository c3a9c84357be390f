
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from rich.console import Console

from ...main import create_streamer, load_config
from ...utils.formatting import FormattingUtils


def run_status(config_path: Optional[Path] = None, cli_options: Optional[Dict[str, Any]] = None,
               console: Optional[Console] = None) -> int:
    """
    Show the streamer's initial state as derived from configuration.
    """
    try:
        config = load_config(config_path, cli_options)
        streamer = create_streamer(config)

        console = console or Console()
        console.print(f"Process: {streamer.process_name}")
        console.print(f"Command: {' '.join(config.streamer.build_command())}")
        console.print(f"State: {streamer.state}")
        console.print(f"Status: {FormattingUtils.format_status(streamer.get_status())}")
        if config.store.backend == 'jsonl':
            console.print(f"Store: jsonl ({config.store.path})")
        else:
            console.print(f"Store: {config.store.backend}")
        webhook = "configured" if streamer.notifier.is_configured() else "not configured"
        console.print(f"Discord webhook: {webhook}")
        return 0

    except Exception as e:
        logging.error(f"Status error: {e}")
        return 1
