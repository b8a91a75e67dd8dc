"""
Structured JSON logging.
"""
import logging
import json
import os
from datetime import datetime, timezone
import sys


class StructuredLogger:
    def __init__(self, name):
        self.logger = logging.getLogger(name)

    def _log(self, level, message, exc_info=False, **kwargs):
        record = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": logging.getLevelName(level),
            "message": message,
            "module": self.logger.name,
            **kwargs
        }
        self.logger.log(level, json.dumps(record, default=str), exc_info=exc_info)

    def info(self, message, **kwargs):
        self._log(logging.INFO, message, **kwargs)

    def error(self, message, **kwargs):
        self._log(logging.ERROR, message, **kwargs)

    def warning(self, message, **kwargs):
        self._log(logging.WARNING, message, **kwargs)

    def debug(self, message, **kwargs):
        self._log(logging.DEBUG, message, **kwargs)


def setup_logging():
    """Configure root logger to use structured JSON."""
    root = logging.getLogger()
    root.setLevel(logging.INFO)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter('%(message)s'))
    root.handlers = [handler]
    # Override for our modules
    logging.getLogger("duoflow").setLevel(logging.DEBUG if os.getenv("DEBUG") else logging.INFO)
