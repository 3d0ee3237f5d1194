import inspect
import logging
from logging.handlers import RotatingFileHandler
import os
import json
from contextvars import ContextVar
from datetime import datetime, timezone
from functools import wraps
from typing import Optional
import traceback

from school_admin.core.config import settings

# Set by RequestIDMiddleware for the lifetime of a request
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


class RequestContextFilter(logging.Filter):
    """Stamp every record with the id of the request being served"""
    def filter(self, record):
        if not hasattr(record, 'request_id'):
            record.request_id = request_id_var.get() or "-"
        return True


class CustomJsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging"""
    def __init__(self, **kwargs):
        super().__init__()
        self.kwargs = kwargs

    def format(self, record):
        json_record = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
        }

        if hasattr(record, 'request_id'):
            json_record['request_id'] = record.request_id

        if record.exc_info:
            json_record['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': traceback.format_exception(*record.exc_info)
            }

        if hasattr(record, 'duration'):
            json_record['duration_ms'] = record.duration

        if self.kwargs.get('extra_fields'):
            for field in self.kwargs['extra_fields']:
                if hasattr(record, field):
                    json_record[field] = getattr(record, field)

        return json.dumps(json_record, default=str)


class LoggerFactory:
    """Factory class for creating and configuring loggers"""

    @staticmethod
    def create_logger(name: str, log_dir: Optional[str] = None, level: str = "INFO"):
        logger = logging.getLogger(name)
        logger.setLevel(getattr(logging, level))
        logger.propagate = False

        # Remove existing handlers if any
        if logger.handlers:
            logger.handlers.clear()

        handlers = {
            'console': logging.StreamHandler()
        }

        # File output is opt-in; containers usually only collect stdout
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
            handlers['app'] = RotatingFileHandler(
                os.path.join(log_dir, 'app.log'),
                maxBytes=10 * 1024 * 1024,  # 10MB
                backupCount=5
            )
            handlers['error'] = RotatingFileHandler(
                os.path.join(log_dir, 'error.log'),
                maxBytes=10 * 1024 * 1024,
                backupCount=5
            )

        context_filter = RequestContextFilter()
        for handler_name, handler in handlers.items():
            if handler_name == 'error':
                handler.setLevel(logging.ERROR)
            else:
                handler.setLevel(getattr(logging, level))

            # JSON for files, plain text for the console
            if isinstance(handler, RotatingFileHandler):
                handler.setFormatter(CustomJsonFormatter(
                    extra_fields=['user_id', 'school_id', 'teacher_id']
                ))
            else:
                handler.setFormatter(logging.Formatter(
                    '%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] %(message)s'
                ))

            handler.addFilter(context_filter)
            logger.addHandler(handler)

        return logger


def log_function_call(logger):
    """Decorator to log function entry, exit, and performance"""
    def decorator(func):
        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            start_time = datetime.now()
            func_name = func.__qualname__

            logger.debug(f"Entering function: {func_name}")
            try:
                result = await func(*args, **kwargs)
            except Exception:
                logger.debug(f"Leaving function with error: {func_name}")
                raise
            duration = (datetime.now() - start_time).total_seconds() * 1000
            logger.debug(
                f"Exiting function: {func_name}",
                extra={'duration': duration}
            )
            return result

        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            start_time = datetime.now()
            func_name = func.__qualname__

            logger.debug(f"Entering function: {func_name}")
            result = func(*args, **kwargs)
            duration = (datetime.now() - start_time).total_seconds() * 1000
            logger.debug(
                f"Exiting function: {func_name}",
                extra={'duration': duration}
            )
            return result

        return async_wrapper if inspect.iscoroutinefunction(func) else sync_wrapper
    return decorator

# Create default logger instance
logger = LoggerFactory.create_logger(
    "SchoolAdminLogger",
    log_dir=settings.LOG_DIR,
    level=settings.LOG_LEVEL
)
