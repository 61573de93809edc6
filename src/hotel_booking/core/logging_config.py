"""
Structured logging configuration with trace IDs
"""
import logging
import uuid
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger
import contextvars
from datetime import datetime

from hotel_booking.core.config import settings

# Context variable to store trace ID across async calls
trace_id_var = contextvars.ContextVar('trace_id', default=None)

# Attributes passed through `extra=` that are copied onto the JSON record
CONTEXT_FIELDS = (
    'user_id',
    'room_id',
    'booking_id',
    'from_status',
    'to_status',
    'duration_ms',
)


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with trace ID and booking context fields"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record['timestamp'] = datetime.utcnow().isoformat()
        log_record['level'] = record.levelname

        trace_id = trace_id_var.get()
        if trace_id:
            log_record['trace_id'] = trace_id

        log_record['service'] = 'hotel-booking'
        log_record['environment'] = 'development' if settings.DEBUG else 'production'

        for field in CONTEXT_FIELDS:
            if hasattr(record, field):
                log_record[field] = getattr(record, field)


def setup_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> logging.Logger:
    """Configure structured JSON logging"""
    formatter = CustomJsonFormatter(
        '%(timestamp)s %(level)s %(name)s %(message)s'
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level or settings.LOG_LEVEL)

    # Avoid stacking handlers when the app is re-created (reload, tests)
    for handler in list(root_logger.handlers):
        if isinstance(handler.formatter, CustomJsonFormatter):
            root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    log_file = log_file or settings.LOG_FILE
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # Reduce noise from libraries
    logging.getLogger('uvicorn.access').setLevel(logging.WARNING)
    logging.getLogger('sqlalchemy.engine').setLevel(
        logging.INFO if settings.DEBUG else logging.WARNING
    )

    return root_logger


def get_trace_id() -> Optional[str]:
    """Get current trace ID"""
    return trace_id_var.get()


def set_trace_id(trace_id: str):
    """Set trace ID for current context"""
    trace_id_var.set(trace_id)


def generate_trace_id() -> str:
    """Generate a new trace ID"""
    return str(uuid.uuid4())
