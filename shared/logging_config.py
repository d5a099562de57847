import logging
import sys
import os
from logging.handlers import RotatingFileHandler

from shared.config import settings

# Logs go to ./logs unless VIBESHARE_LOG_DIR points elsewhere
LOG_DIR = os.environ.get("VIBESHARE_LOG_DIR", os.path.join(os.getcwd(), "logs"))
os.makedirs(LOG_DIR, exist_ok=True)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_MAX_BYTES = 5 * 1024 * 1024
LOG_FILE_BACKUPS = 3


def _console_handler(level: str, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def _file_handler(log_file: str, formatter: logging.Formatter) -> logging.Handler:
    handler = RotatingFileHandler(
        os.path.join(LOG_DIR, log_file),
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUPS,
        encoding="utf-8",
    )
    # The file keeps everything; the console follows the configured level
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(formatter)
    return handler


def setup_logger(name: str, log_file: str = None) -> logging.Logger:
    """
    Set up a logger with both file and console handlers

    Args:
        name: Name of the logger (usually __name__)
        log_file: Optional log file name, defaults to the last part of the module name

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    level = settings.log_level
    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    logger.addHandler(_console_handler(level, formatter))
    logger.addHandler(_file_handler(log_file or f"{name.split('.')[-1]}.log", formatter))
    return logger
