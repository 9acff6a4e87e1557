import logging
import sys
from pathlib import Path
from typing import Optional, Union

FILE_FORMAT = '%(asctime)s [%(levelname)s] %(name)s (%(filename)s:%(lineno)d) - %(message)s'
CONSOLE_FORMAT = '%(asctime)s [%(levelname)s] %(name)s - %(message)s'

# Every poll and catalog request would otherwise show up at INFO
NOISY_LOGGERS = {"asyncio": logging.INFO, "httpx": logging.WARNING, "httpcore": logging.WARNING}


def resolve_level(level: Union[int, str]) -> int:
    """Accepts 10 or "debug"; unknown names fall back to INFO."""
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).upper())
    return value if isinstance(value, int) else logging.INFO


def setup_logging(level: Union[int, str] = logging.INFO, log_file: Optional[Path] = None):
    """
    Configures the root logger for anisync.
    Console output goes to stderr so it never mixes with the CLI's own
    messages on stdout. When log_file is given the full format with source
    locations is also written there, creating the storage directory first.
    """
    level = resolve_level(level)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Clear existing handlers to avoid duplicates
    if root_logger.hasHandlers():
        root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    root_logger.addHandler(console_handler)

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        root_logger.addHandler(file_handler)

    for name, noisy_level in NOISY_LOGGERS.items():
        logging.getLogger(name).setLevel(noisy_level)

    logging.info(f"Logging initialized. Level: {logging.getLevelName(level)}, File: {log_file or '-'}")

def get_logger(name):
    """Returns a logger with the given name."""
    return logging.getLogger(name)
