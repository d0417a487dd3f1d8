import logging
import sys
from datetime import datetime
from pathlib import Path

from velohub.config import Config

FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

def _file_handler(formatter: logging.Formatter) -> logging.Handler:
    log_dir = Path(Config.LOG_DIR)
    log_dir.mkdir(parents=True, exist_ok=True)

    handler = logging.FileHandler(
        log_dir / f'velohub_{datetime.now().strftime("%Y%m%d")}.log',
        encoding='utf-8'
    )
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(formatter)
    return handler

def setup_logger(name: str) -> logging.Logger:
    """Setup a logger with console output and, when LOG_DIR is set, a dated log file"""

    logger = logging.getLogger(name)

    if logger.handlers:
        return logger

    log_level = logging.DEBUG if Config.DEBUG else logging.INFO
    logger.setLevel(log_level)
    # Handlers live here; keep records away from the root logger
    logger.propagate = False

    formatter = logging.Formatter(FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if Config.LOG_DIR:
        logger.addHandler(_file_handler(formatter))

    return logger

def setup_root_logging():
    """Route module loggers (logging.getLogger(__name__)) and aiohttp access logs to the console"""
    logging.basicConfig(
        level=logging.DEBUG if Config.DEBUG else logging.INFO,
        format=FORMAT,
        datefmt=DATE_FORMAT,
        stream=sys.stdout,
    )
