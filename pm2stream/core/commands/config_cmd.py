
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from ...config.config import Config
from ...config.settings import Settings
from ...utils.log_setup import setup_logging


def _coerce(current_value, value: str):
    if isinstance(current_value, bool):
        return value.lower() in ['true', '1', 'yes', 'on']
    if isinstance(current_value, int):
        return int(value)
    if isinstance(current_value, float):
        return float(value)
    if isinstance(current_value, list):
        return value.split()
    return value


def _resolve(config: Config, key: str):
    parts = key.split('.')
    if len(parts) != 2:
        print(f"Invalid option format: {key}. Use 'section.option' format", file=sys.stderr)
        return None
    section, option = parts
    if not hasattr(config, section):
        print(f"Unknown section: {section}", file=sys.stderr)
        return None
    section_obj = getattr(config, section)
    if not hasattr(section_obj, option):
        print(f"Unknown option: {option} in section {section}", file=sys.stderr)
        return None
    return section_obj, option


def run_config_commands(config_path: Optional[Path] = None, set_options: Optional[List[tuple]] = None,
                        get_option: Optional[str] = None, list_config: bool = False,
                        validate_config: bool = False, reset_config: bool = False) -> int:
    """
    Run configuration management commands.
    """
    try:
        if not config_path:
            config_path = Path(os.getenv('PM2STREAM_CONFIG', Settings.DEFAULT_CONFIG_PATH))

        setup_logging(os.environ.get('PM2STREAM_LOG_LEVEL', "INFO"))

        if reset_config:
            Config.from_dict(Config.get_default_config_dict()).save(config_path)
            print(f"Configuration reset to defaults: {config_path}")
            return 0

        config = Config.load(config_path)

        if validate_config:
            errors = config.validate()
            if errors:
                print("Configuration validation failed:", file=sys.stderr)
                for error in errors:
                    print(f"  - {error}", file=sys.stderr)
                return 1
            print("Configuration is valid")
            return 0

        if set_options:
            for key, value in set_options:
                resolved = _resolve(config, key)
                if resolved is None:
                    return 1
                section_obj, option = resolved
                setattr(section_obj, option, _coerce(getattr(section_obj, option), value))

            config.save(config_path)
            print(f"Configuration updated: {config_path}")

        if get_option:
            resolved = _resolve(config, get_option)
            if resolved is None:
                return 1
            section_obj, option = resolved
            print(f"{get_option} = {getattr(section_obj, option)}")

        if list_config:
            print("Configuration:")
            for section, options in config.to_dict().items():
                print(f"  [{section}]")
                for key, value in options.items():
                    print(f"    {key} = {value}")
                print()

        return 0

    except Exception as e:
        logging.error(f"Config command error: {e}")
        return 1
