import logging
import sys

import logfire

from .config import settings

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging():
    """
    Logs go to stdout, and also to logfire when it's configured. httpx's own request logs are turned down as we log
    every Zoho request ourselves.
    """
    handlers = [logging.StreamHandler(sys.stdout)]
    if settings.logfire_token:
        handlers.append(logfire.LogfireLoggingHandler())
    logging.basicConfig(level=getattr(logging, settings.log_level.upper()), format=LOG_FORMAT, handlers=handlers)
    logging.getLogger('httpx').setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the specified name"""
    return logging.getLogger(name)
