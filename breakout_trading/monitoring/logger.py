"""
Logging setup: console plus rotating file, millisecond timestamps.
"""

import logging
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path

from breakout_trading.core.config import MonitoringConfig


class DotMsFormatter(logging.Formatter):
    def formatTime(self, record, datefmt=None):
        ct = datetime.fromtimestamp(record.created)
        return ct.strftime("%Y-%m-%d %H:%M:%S") + f".{int(record.msecs):03d}"


def setup_logging(config: MonitoringConfig, name: str = "breakout_trading") -> logging.Logger:
    """
    Configure the package logger.

    Args:
        config: Log level and directory
        name: Logger to configure (package root by default)

    Returns:
        The configured logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, config.log_level, logging.INFO))
    # Idempotent across scheduled passes
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = DotMsFormatter("[%(asctime)s] %(levelname)s %(name)s: %(message)s")

    ch = logging.StreamHandler(sys.stdout)
    ch.setFormatter(formatter)
    logger.addHandler(ch)

    if config.log_dir:
        log_path = Path(config.log_dir) / config.log_file
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fh = RotatingFileHandler(log_path, maxBytes=5_000_000, backupCount=5, encoding="utf-8")
        fh.setFormatter(formatter)
        logger.addHandler(fh)

    return logger
