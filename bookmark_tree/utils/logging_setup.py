"""
Logging configuration for the bookmark tree.

This module sets up logging based on configuration settings.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from ..config.pydantic_config import LoggingConfig

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(config: Optional[LoggingConfig] = None) -> Optional[Path]:
    """
    Set up logging configuration.

    Args:
        config: Logging settings (defaults when omitted)

    Returns:
        Path of the log file, or None when file logging is off
    """
    config = config or LoggingConfig()

    handlers = []
    log_path = None

    if config.log_file:
        if getattr(sys, "frozen", False):
            app_dir = Path(sys.executable).parent
        else:
            app_dir = Path.cwd()

        log_dir = app_dir / "logs"
        log_dir.mkdir(exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_path = log_dir / f"{Path(config.log_file).stem}_{timestamp}.log"

        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        handlers.append(file_handler)

    if config.console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        handlers.append(console_handler)

    if not handlers:
        handlers.append(logging.NullHandler())

    logging.basicConfig(
        level=getattr(logging, config.log_level), handlers=handlers, force=True
    )

    logger = logging.getLogger(__name__)
    if log_path:
        logger.info(f"Bookmark tree starting - Log file: {log_path}")
    logger.debug(f"Log level: {config.log_level}")

    # Reduce noise from HTTP libraries
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    return log_path
