"""
Command Line Interface for pm2stream.

This module provides a CLI for running the PM2 log streamer in the foreground,
inspecting persisted logs, testing the notification pipeline and managing
configuration.
"""

import click
import sys
import yaml
from pathlib import Path
from typing import List, Optional
import os

from . import __version__
from .config.config import Config
from .config.settings import Settings
from .core.models import LogLevel
from .main import run_stream
from .core.commands.config_cmd import run_config_commands
from .core.commands.emit import run_test_entry
from .core.commands.parse import run_parse
from .core.commands.recent import run_recent
from .core.commands.status import run_status


def _set_verbosity(verbose: int) -> None:
    if verbose == 1:
        os.environ['PM2STREAM_LOG_LEVEL'] = 'INFO'
    elif verbose >= 2:
        os.environ['PM2STREAM_LOG_LEVEL'] = 'DEBUG'


def _config_path(ctx: click.Context, config: Optional[Path]) -> Optional[Path]:
    return config or ctx.obj.get('config_path')


@click.group(help="pm2stream - Stream, store and alert on PM2 process logs.")
@click.option('--config', '-c', type=click.Path(exists=True, path_type=Path),
              help='Path to configuration file')
@click.option('--verbose', '-V', count=True, help='Increase verbosity (use -VV for debug)')
@click.version_option(__version__, '--version', '-v', prog_name=Settings.APP_NAME)
@click.pass_context
def cli(ctx: click.Context, config: Optional[Path], verbose: int) -> None:
    """
    pm2stream - Stream, store and alert on PM2 process logs.
    
    Usage Examples:
      pm2stream run                                 # Stream logs until Ctrl-C
      pm2stream run --process api-server            # Stream another PM2 process
      pm2stream recent -n 50                        # Show stored logs
      pm2stream parse captured.log --format json    # Parse captured output
      pm2stream test-entry --level critical         # Exercise the alert pipeline
      pm2stream config --list                       # List configuration
    """
    _set_verbosity(verbose)
    ctx.ensure_object(dict)
    ctx.obj['config_path'] = config


@cli.command(help="Stream logs from the PM2 process until interrupted.")
@click.option('--config', '-c', type=click.Path(exists=True, path_type=Path),
              help='Path to configuration file')
@click.option('--process', '-p', 'process_name', type=str, default=None,
              help='PM2 process to stream (default from configuration)')
@click.option('--store', 'store_path', type=click.Path(path_type=Path), default=None,
              help='JSON-lines file to persist records to')
@click.option('--webhook-url', type=str, default=None, help='Discord webhook URL for alerts')
@click.option('--format', 'output_format', type=click.Choice(['text', 'json']),
              default='text', help='Output format (default: text)')
@click.pass_context
def run(ctx, config: Optional[Path], process_name: Optional[str], store_path: Optional[Path],
        webhook_url: Optional[str], output_format: str) -> None:
    """
    Stream logs from the PM2 process until interrupted.
    
    Every line is parsed, persisted, printed and, for error and critical
    records, forwarded to the Discord webhook. The process is re-attached with
    exponential backoff when the log stream closes.
    """
    cli_options = {
        'process_name': process_name,
        'store_path': str(store_path) if store_path else None,
        'webhook_url': webhook_url,
    }
    sys.exit(run_stream(config_path=_config_path(ctx, config), cli_options=cli_options,
                        output_format=output_format))


@cli.command(help="Parse captured PM2 log lines from a file or stdin.")
@click.argument('log_path', required=False, type=click.Path(exists=True, path_type=Path))
@click.option('--config', '-c', type=click.Path(exists=True, path_type=Path),
              help='Path to configuration file')
@click.option('--format', 'output_format', type=click.Choice(['text', 'json']),
              default='text', help='Output format (default: text)')
@click.pass_context
def parse(ctx, log_path: Optional[Path], config: Optional[Path], output_format: str) -> None:
    """
    Parse captured PM2 log lines from a file or stdin.
    
    Examples:
      pm2stream parse captured.log
      pm2 logs modl-panel --raw --timestamp --nostream | pm2stream parse --format json
    """
    sys.exit(run_parse(config_path=_config_path(ctx, config), log_path=log_path,
                       output_format=output_format))


@cli.command(help="Show the most recent stored logs of the PM2 process.")
@click.option('--config', '-c', type=click.Path(exists=True, path_type=Path),
              help='Path to configuration file')
@click.option('--limit', '-n', type=int, default=20, help='Number of records (default: 20)')
@click.option('--process', '-p', 'process_name', type=str, default=None,
              help='PM2 process whose logs to show')
@click.option('--store', 'store_path', type=click.Path(path_type=Path), default=None,
              help='JSON-lines file to read records from')
@click.option('--format', 'output_format', type=click.Choice(['text', 'json']),
              default='text', help='Output format (default: text)')
@click.pass_context
def recent(ctx, config: Optional[Path], limit: int, process_name: Optional[str],
           store_path: Optional[Path], output_format: str) -> None:
    """Show the most recent stored logs of the PM2 process, newest first."""
    cli_options = {
        'process_name': process_name,
        'store_path': str(store_path) if store_path else None,
    }
    sys.exit(run_recent(config_path=_config_path(ctx, config), cli_options=cli_options,
                        limit=limit, output_format=output_format))


@cli.command('test-entry', help="Send a synthetic record through the full pipeline.")
@click.option('--config', '-c', type=click.Path(exists=True, path_type=Path),
              help='Path to configuration file')
@click.option('--level', '-l', type=click.Choice([level.value for level in LogLevel]),
              default='error', help='Record level (default: error)')
@click.option('--message', '-m', type=str, default='Test log entry', help='Record message')
@click.option('--store', 'store_path', type=click.Path(path_type=Path), default=None,
              help='JSON-lines file to persist the record to')
@click.option('--webhook-url', type=str, default=None, help='Discord webhook URL for alerts')
@click.pass_context
def test_entry(ctx, config: Optional[Path], level: str, message: str,
               store_path: Optional[Path], webhook_url: Optional[str]) -> None:
    """
    Send a synthetic record through the full pipeline.
    
    Useful for checking the store and the Discord webhook without a running
    PM2 process.
    """
    cli_options = {
        'store_path': str(store_path) if store_path else None,
        'webhook_url': webhook_url,
    }
    sys.exit(run_test_entry(config_path=_config_path(ctx, config), cli_options=cli_options,
                            level=level, message=message))


@cli.command(help="Show the configured streamer state.")
@click.option('--config', '-c', type=click.Path(exists=True, path_type=Path),
              help='Path to configuration file')
@click.pass_context
def status(ctx, config: Optional[Path]) -> None:
    """Show the streamer state derived from configuration and environment."""
    sys.exit(run_status(config_path=_config_path(ctx, config)))


@cli.command('config', help="Manage configuration settings.")
@click.option('--config', '-c', type=click.Path(path_type=Path),
              help=f'Path to configuration file (default: {Settings.DEFAULT_CONFIG_PATH})')
@click.option('--set', 'set_options', multiple=True, nargs=2, metavar='KEY VALUE',
              help='Set configuration option (e.g., --set streamer.process_name api)')
@click.option('--get', 'get_option', type=str,
              help='Get specific configuration option')
@click.option('--list', 'list_config', is_flag=True,
              help='List all configuration options')
@click.option('--validate', 'validate_config', is_flag=True,
              help='Validate configuration file')
@click.option('--reset', 'reset_config', is_flag=True,
              help='Reset to default configuration')
def config_cmd(config: Optional[Path], set_options: List[tuple],
              get_option: str, list_config: bool, validate_config: bool,
              reset_config: bool) -> None:
    """
    Manage configuration settings.
    
    Configuration options follow the format 'section.option', such as:
    - streamer.enabled
    - streamer.process_name
    - reconnect.max_attempts
    - notifications.discord_webhook_url
    - logging.level
    
    Examples:
      pm2stream config --list
      pm2stream config --get reconnect.max_delay
      pm2stream config --set streamer.enabled false
      pm2stream config --validate
    """
    exit_code = run_config_commands(config_path=config, set_options=list(set_options),
                                   get_option=get_option, list_config=list_config,
                                   validate_config=validate_config,
                                   reset_config=reset_config)
    sys.exit(exit_code)


@cli.command(help="Initialize a new configuration file.")
def init() -> None:
    """
    Initialize a new configuration file.
    
    Creates a default pm2stream.yaml file in the current directory.
    """
    config_path = Path(Settings.DEFAULT_CONFIG_PATH)
    if config_path.exists():
        click.echo(f"Configuration file already exists: {config_path}", err=True)
        sys.exit(1)
    
    default_config = Config.get_default_config_dict()
    
    with open(config_path, 'w') as f:
        yaml.dump(default_config, f, default_flow_style=False)
    
    click.echo(f"Created default configuration file: {config_path}")


def main() -> None:
    """Main CLI entry point."""
    cli()


if __name__ == "__main__":
    main()
