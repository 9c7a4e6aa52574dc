"""
Logging setup for the API process.
"""

import json
import logging
import sys
import traceback
from datetime import datetime

from app.config import settings


class JsonFormatter(logging.Formatter):
    """Formatter that emits one JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            log_data["exception"] = "".join(traceback.format_exception(*record.exc_info))
        return json.dumps(log_data, ensure_ascii=False, default=str)


def setup_logging(level: str = None, json_output: bool = None) -> None:
    """Configure the root logger once; safe to call repeatedly."""
    level = (level or settings.LOG_LEVEL).upper()
    json_output = settings.LOG_JSON if json_output is None else json_output

    root = logging.getLogger()
    root.setLevel(level)

    for handler in root.handlers:
        if getattr(handler, "_crm_handler", False):
            return

    handler = logging.StreamHandler(sys.stdout)
    handler._crm_handler = True
    if json_output:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s [%(name)s] %(message)s"
        ))
    root.addHandler(handler)

    # SQL echo is handled by the engine, keep the noisy loggers down
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("passlib").setLevel(logging.ERROR)
