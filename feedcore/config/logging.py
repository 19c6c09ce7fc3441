"""
Structured logging configuration.
JSON lines in production, a readable single-line format when debugging.
"""
import json
import logging
import sys
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

# Extra attributes copied into the JSON payload when a call site sets them
CONTEXT_FIELDS = ("user_id", "url", "bucket", "key_index", "session")


class LogRecord(BaseModel):
    """Structured log record schema."""
    timestamp: str
    level: str
    logger: str
    message: str
    context: Dict[str, Any] = Field(default_factory=dict)
    exception: Optional[str] = None


class JsonFormatter(logging.Formatter):
    """Format log records as JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        """Format the record as JSON."""
        context = {
            name: getattr(record, name)
            for name in CONTEXT_FIELDS
            if hasattr(record, name)
        }
        structured = LogRecord(
            timestamp=self.formatTime(record, self.datefmt),
            level=record.levelname,
            logger=record.name,
            message=record.getMessage(),
            context=context,
            exception=self.formatException(record.exc_info) if record.exc_info else None,
        )
        return json.dumps(structured.model_dump(exclude_none=True), default=str)


def configure_logging(debug: bool = False) -> None:
    """Configure root logger with JSON formatter."""
    handler = logging.StreamHandler(sys.stdout)

    if debug:
        formatter = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
        )
    else:
        formatter = JsonFormatter()

    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(logging.DEBUG if debug else logging.INFO)

    # Reduce noise
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.error").handlers = [handler]
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
