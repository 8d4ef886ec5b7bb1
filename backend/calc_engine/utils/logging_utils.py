"""
Logging utilities for the commission engine
Location: backend/calc_engine/utils/logging_utils.py
"""

import os
import json
import logging
from datetime import datetime
from typing import Any, Dict, Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logging(log_level: str = 'INFO', log_file: Optional[str] = None, json_format: bool = False):
    """
    Setup application logging with the specified configuration.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to log file. If None, logs to console only.
        json_format: Emit one JSON object per record instead of plain text.
    """
    numeric_level = getattr(logging, str(log_level).upper(), logging.INFO)

    if log_file:
        directory = os.path.dirname(log_file)
        if directory:
            os.makedirs(directory, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(log_file, mode='a')
    else:
        handler = logging.StreamHandler()

    if json_format:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))

    logging.basicConfig(level=numeric_level, handlers=[handler], force=True)

    return logging.getLogger(__name__)


class JsonFormatter(logging.Formatter):
    """
    Format log records as JSON for structured logging
    """
    def format(self, record):
        log_record: Dict[str, Any] = {
            'timestamp': datetime.fromtimestamp(record.created).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'line': record.lineno
        }

        if record.exc_info:
            log_record['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_record, default=str)


class LoggerAdapter(logging.LoggerAdapter):
    """
    Adapter that appends key=value context to log messages
    """
    def __init__(self, logger, extra=None):
        super().__init__(logger, extra or {})

    def process(self, msg, kwargs):
        if not self.extra:
            return msg, kwargs
        context_str = ' '.join(f'{k}={v}' for k, v in self.extra.items())
        return f"{msg} [{context_str}]", kwargs
