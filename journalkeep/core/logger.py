"""
journalkeep/core/logger.py

One JSON line per record on stdout, UTC timestamps.
"""

import json
import logging
import os
import sys
import time
from typing import Optional, Union


class JsonLineFormatter(logging.Formatter):
    """Serializes each record as a JSON object, so any message stays valid JSON."""

    converter = time.gmtime

    def format(self, record: logging.LogRecord) -> str:
        line = {
            "ts":    self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "name":  record.name,
            "msg":   record.getMessage(),
        }
        if record.exc_info:
            line["exc"] = self.formatException(record.exc_info)
        return json.dumps(line, ensure_ascii=False)


def get_logger(
    name: str = "journalkeep",
    level: Union[int, str] = logging.INFO,
    to_file: Optional[str] = None,
) -> logging.Logger:
    """Structured logger shared by host, program and client."""
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if not logger.handlers:
        formatter = JsonLineFormatter(datefmt="%Y-%m-%dT%H:%M:%SZ")

        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

        if to_file:
            os.makedirs(os.path.dirname(to_file) or ".", exist_ok=True)
            file_handler = logging.FileHandler(to_file)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    return logger
