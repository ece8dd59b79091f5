"""
Centralized logging configuration for the eligibility engine.
Ensures consistent logging format and level across all modules.
"""

import logging
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
PACKAGE_LOGGER = "eligibility"


def configure_logging(
    level: Union[int, str] = logging.INFO,
    log_dir: Optional[Path] = None,
) -> logging.Logger:
    """
    Configures and returns the package logger.

    Modules log through ``logging.getLogger(__name__)``, so handlers attached
    here apply to every ``eligibility.*`` module.

    Args:
        level (int | str): Logging level or level name (default is logging.INFO).
        log_dir (Path, optional): When given, log files are also written here.

    Returns:
        logging.Logger: Configured package logger.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)

    formatter = logging.Formatter(LOG_FORMAT)

    # Repeated calls (tests, batch runs) must not stack handlers.
    # FileHandler subclasses StreamHandler, so match the console type exactly.
    if not any(type(handler) is logging.StreamHandler for handler in logger.handlers):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_dir is not None and not any(
        isinstance(handler, RotatingFileHandler) for handler in logger.handlers
    ):
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / f"{PACKAGE_LOGGER}_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"
        file_handler = RotatingFileHandler(log_file, maxBytes=5*1024*1024, backupCount=5)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
