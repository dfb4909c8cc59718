import logging
from logging.handlers import RotatingFileHandler
from typing import Optional

from rich.logging import RichHandler

FILE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(level=logging.INFO, log_file: Optional[str] = None):
    """Console logging through rich, plus an optional rotating log file."""
    handlers = [RichHandler(rich_tracebacks=True, show_path=False)]
    if log_file:
        file_handler = RotatingFileHandler(log_file, maxBytes=10 * 1024 * 1024, backupCount=1)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        handlers.append(file_handler)

    logging.basicConfig(
        level=level,
        format='%(message)s',
        datefmt='[%X]',
        handlers=handlers,
        force=True
    )
    return logging.getLogger('tinyrelay')
