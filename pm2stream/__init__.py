"""
pm2stream - Streams the logs of a PM2-managed process.

Each log line is parsed into a structured record, persisted, republished to
real-time subscribers and, for errors, forwarded to a Discord webhook.
"""

__version__ = "0.1.0"

# Import main modules for easy access
from . import config
from . import core
from . import notifications
from . import parsers
from . import storage
from . import utils

__all__ = [
    "config",
    "core",
    "notifications",
    "parsers",
    "storage",
    "utils",
    "__version__"
]

# Define the CLI entry point function
def main():
    """Main entry point for the CLI."""
    from .cli import main as cli_main
    return cli_main()
