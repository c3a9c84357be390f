"""
Main application entry point for pm2stream.

This module wires the single ProcessLogStreamer instance together from
configuration and runs it in the foreground until interrupted.
"""

import asyncio
import json
import logging
import signal
from pathlib import Path
from typing import Any, Dict, Optional

from rich.console import Console

from .config.config import Config
from .core.event_bus import EventBus
from .core.models import LogRecord
from .core.process_source import PM2ProcessSource
from .core.streamer import ProcessLogStreamer
from .notifications.discord import DiscordWebhookNotifier
from .storage.log_store import create_log_store
from .utils.formatting import FormattingUtils
from .utils.log_setup import setup_logging


logger = logging.getLogger(__name__)


def configure_logging(config: Config) -> None:
    """Set up logging from the configuration's logging section."""
    setup_logging(config.logging.level, Path(config.logging.file) if config.logging.file else None)


def load_config(config_path: Optional[Path] = None, cli_options: Optional[Dict[str, Any]] = None) -> Config:
    """
    Load configuration, apply CLI overrides and set up logging.
    
    Args:
        config_path: Path to configuration file
        cli_options: Options given on the command line
        
    Returns:
        Config instance
    """
    config = Config.load(config_path)
    if cli_options:
        config.apply_cli_overrides(cli_options)
    configure_logging(config)
    return config


def create_streamer(config: Config, process_source=None, store=None, notifier=None,
                    event_bus: Optional[EventBus] = None) -> ProcessLogStreamer:
    """
    Build the streamer and its collaborators.
    
    Args:
        config: Application configuration
        process_source: Attachment source (spawns ``pm2 logs`` by default)
        store: Log store (selected by ``config.store`` by default)
        notifier: Webhook notifier (Discord by default)
        event_bus: Event bus for real-time subscribers
        
    Returns:
        ProcessLogStreamer instance
    """
    return ProcessLogStreamer(
        config,
        process_source=process_source or PM2ProcessSource(config),
        store=store or create_log_store(config),
        notifier=notifier or DiscordWebhookNotifier(config),
        event_bus=event_bus,
    )


def print_record(console: Console, record: LogRecord, output_format: str = 'text') -> None:
    """Print one streamed record to the console."""
    if output_format == 'json':
        console.print_json(json.dumps(record.to_dict(), default=str))
    else:
        console.print(FormattingUtils.format_record_line(record), highlight=False)


async def stream_until_stopped(streamer: ProcessLogStreamer, console: Console,
                               output_format: str = 'text',
                               stop_event: Optional[asyncio.Event] = None) -> int:
    """
    Stream and print records until a stop signal arrives or retries run out.
    
    Returns:
        Exit code: 0 after a requested stop, 1 if reconnect attempts ran out
    """
    stop_event = stop_event or asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except (NotImplementedError, RuntimeError):
            pass # No signal handlers outside the main thread or on Windows
    
    streamer.subscribe(lambda event: print_record(console, event.data, output_format))
    await streamer.start()
    
    exit_code = 0
    if not streamer.enabled:
        console.print("[yellow]PM2 log streaming is disabled by configuration[/yellow]")
        stop_event.set()
    
    while not stop_event.is_set():
        if streamer.state == 'stopped':
            logger.error("Log streaming stopped after exhausting reconnect attempts")
            exit_code = 1
            break
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=1.0)
        except asyncio.TimeoutError:
            continue
    
    await streamer.shutdown()
    return exit_code


def run_stream(config_path: Optional[Path] = None, cli_options: Optional[Dict[str, Any]] = None,
               output_format: str = 'text') -> int:
    """
    Run the log streamer in the foreground.
    
    Args:
        config_path: Path to configuration file
        cli_options: Options given on the command line
        output_format: ``text`` or ``json`` output for each record
        
    Returns:
        Exit code
    """
    try:
        config = load_config(config_path, cli_options)
        
        errors = config.validate()
        if errors:
            for error in errors:
                logger.error(f"Configuration error: {error}")
            return 2
        
        console = Console()
        streamer = create_streamer(config)
        return asyncio.run(stream_until_stopped(streamer, console, output_format))
        
    except KeyboardInterrupt:
        return 0
    except Exception as e:
        logger.error(f"Streaming error: {str(e)}")
        return 1
