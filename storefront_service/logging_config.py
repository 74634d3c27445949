"""
logging_config.py — Log Setup for the Storefront Service

One place to decide where checkout, cart and webhook events are written.
Every line carries the worker PID so interleaved uvicorn workers stay readable.

    • stdout always; a log file only when LOG_FILE is set
    • httpx/httpcore are held at WARNING, they log each provider round trip
"""

import logging
import sys
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(levelname)s - [PID:%(process)d] - %(message)s'


def setup_logging(log_file: Optional[str] = None, level: int = logging.INFO):
    """
    Installs the root handlers. Call once, at process start.

    Args:
        log_file (Optional[str]): Extra file destination next to stdout.
        level (int): Root log level.
    """
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def get_logger(name):
    """Module logger; output goes through the handlers set by setup_logging()."""
    return logging.getLogger(name)
