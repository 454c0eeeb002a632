"""Central logging configuration."""
from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
import os
import sys
from pathlib import Path

LOG_DIR = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config")) / "inkline" / "logs"
LOG_FILE = LOG_DIR / "inkline.log"


def level_from_name(name: str | int | None, default: int = logging.INFO) -> int:
    """Translate a configured level such as ``"debug"`` to a logging constant."""

    if isinstance(name, int):
        return name
    if not name:
        return default
    value = logging.getLevelName(str(name).upper())
    return value if isinstance(value, int) else default


def configure_logging(level: int = logging.INFO, log_dir: Path | None = None) -> None:
    """Configure both console and rotating file logging."""

    directory = log_dir or LOG_DIR
    directory.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)

    file_handler = RotatingFileHandler(directory / LOG_FILE.name, maxBytes=512_000, backupCount=5)
    file_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    if not root_logger.handlers:
        root_logger.addHandler(console_handler)
        root_logger.addHandler(file_handler)


def get_logger(name: str) -> logging.Logger:
    """Return a module-level logger with standard configuration."""

    logger = logging.getLogger(name)
    if not logging.getLogger().handlers:
        configure_logging()
    return logger
