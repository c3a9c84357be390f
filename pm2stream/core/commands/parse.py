
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console

from ...config.config import Config
from ...parsers.log_parser import PM2LogParser
from ...utils.formatting import FormattingUtils
from ...utils.log_setup import setup_logging


def run_parse(config_path: Optional[Path] = None, log_path: Optional[Path] = None,
              output_format: str = 'text', console: Optional[Console] = None) -> int:
    """
    Parse captured PM2 log lines from a file or stdin.
    """
    try:
        config = Config.load(config_path)
        setup_logging(config.logging.level)

        parser = PM2LogParser(config)
        if log_path:
            result = parser.parse(str(log_path))
            if not result:
                logging.error(f"Failed to parse log file: {log_path}")
                return 1
            records = result['records']
        else:
            records = parser.parse_text(sys.stdin.read())

        console = console or Console()
        if output_format == 'json':
            console.print_json(json.dumps([record.to_dict() for record in records], default=str))
        else:
            for record in records:
                console.print(FormattingUtils.format_record_line(record), highlight=False)

        return 0

    except Exception as e:
        logging.error(f"Parse error: {e}")
        return 1
