"""
Logging setup for CLI commands.
"""
import logging

from stremio_manager.core.config import settings
from stremio_manager.core.logging_config import setup_logging


def setup_cli_logging(command: str, verbose: bool = False) -> logging.Logger:
    """
    Configure logging for a CLI command and return its logger.

    Console output stays at WARNING unless verbose is set, so log lines do
    not interleave with rich tables.
    """
    setup_logging(level="DEBUG" if verbose else settings.log_level)
    if not verbose:
        for handler in logging.getLogger().handlers:
            if isinstance(handler, logging.StreamHandler) and not isinstance(handler, logging.FileHandler):
                handler.setLevel(logging.WARNING)
    return logging.getLogger(f"stremio_manager.cli.{command}")
