import logging
import sys
from typing import List, Optional
from pathlib import Path
from ..config import get_settings

FALLBACK_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DIR = Path('logs')

def _relay_handlers(formatter: logging.Formatter, level: int, log_file: str) -> List[logging.Handler]:
    """File handler under logs/ plus stdout. Raises if the log file cannot be opened."""
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    handlers: List[logging.Handler] = [
        logging.FileHandler(str(LOG_DIR / log_file)),
        logging.StreamHandler(sys.stdout),
    ]
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.setLevel(level)
    return handlers

def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get the relay logger for a module, configuring it on first use.

    Output goes to stdout and to ``logs/<LOG_FILE>``. When the log file
    cannot be opened the logger falls back to stdout alone.

    Args:
        name: Logger name (usually __name__ of calling module)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name or __name__)
    if logger.handlers:
        return logger

    try:
        settings = get_settings()
        level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
        handlers = _relay_handlers(logging.Formatter(settings.LOG_FORMAT), level, settings.LOG_FILE)
    except Exception as e:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(logging.Formatter(FALLBACK_FORMAT))
        logger.addHandler(console_handler)
        logger.setLevel(logging.INFO)
        logger.error(f"File logging unavailable, using stdout only: {str(e)}")
        return logger

    for handler in handlers:
        logger.addHandler(handler)
    logger.setLevel(level)
    logger.debug(f"Relay logger ready for {name}")
    return logger
