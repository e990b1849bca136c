"""
CounselChat Relay Logging Configuration

Console logging with optional JSON-ish formatting and redaction of
sensitive values.
"""

import logging
import logging.config
import sys
from typing import Dict, Any, Optional

from counselchat.core.config import Settings, get_settings


class SecurityRedactionFilter(logging.Filter):
    """Filter to redact sensitive information from logs"""

    SENSITIVE_FIELDS = [
        "password", "token", "secret", "authorization",
        "cookie", "reset_code", "resetcode", "api_key", "jwt"
    ]

    def filter(self, record):
        if record.args:
            record.args = self._redact_sensitive_data(record.args)
        return True

    def _redact_sensitive_data(self, data):
        """Recursively redact sensitive data from log arguments"""
        if isinstance(data, dict):
            return {
                key: "[REDACTED]" if any(sensitive in str(key).lower() for sensitive in self.SENSITIVE_FIELDS)
                else self._redact_sensitive_data(value)
                for key, value in data.items()
            }
        elif isinstance(data, (list, tuple)):
            return type(data)(self._redact_sensitive_data(item) for item in data)
        return data


def build_logging_config(settings: Settings) -> Dict[str, Any]:
    """Build the dictConfig mapping for the given settings"""
    formatter = "json" if settings.log_format == "json" else "default"

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "redact": {
                "()": SecurityRedactionFilter,
            },
        },
        "formatters": {
            "default": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "json": {
                "format": '{"time": "%(asctime)s", "logger": "%(name)s", "level": "%(levelname)s", "message": "%(message)s"}',
                "datefmt": "%Y-%m-%dT%H:%M:%S",
            },
            "detailed": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(pathname)s:%(lineno)d - %(funcName)s() - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": settings.log_level,
                "formatter": "detailed" if settings.debug and formatter == "default" else formatter,
                "filters": ["redact"],
                "stream": sys.stdout,
            },
        },
        "loggers": {
            "": {  # Root logger
                "level": settings.log_level,
                "handlers": ["console"],
            },
            "counselchat": {
                "level": "DEBUG" if settings.debug else settings.log_level,
                "handlers": ["console"],
                "propagate": False,
            },
            "socketio": {
                "level": "INFO" if settings.debug else "WARNING",
                "handlers": ["console"],
                "propagate": False,
            },
            "engineio": {
                "level": "INFO" if settings.debug else "WARNING",
                "handlers": ["console"],
                "propagate": False,
            },
            "sqlalchemy.engine": {
                "level": "INFO" if settings.debug else "WARNING",
                "handlers": ["console"],
                "propagate": False,
            },
            "uvicorn.access": {
                "level": "WARNING",
                "handlers": ["console"],
                "propagate": False,
            },
            "uvicorn.error": {
                "level": "INFO",
                "handlers": ["console"],
                "propagate": False,
            },
        },
    }


def setup_logging(settings: Optional[Settings] = None) -> None:
    """Setup logging configuration for the relay service"""
    settings = settings or get_settings()
    logging.config.dictConfig(build_logging_config(settings))

    logger = logging.getLogger("counselchat.startup")
    logger.info(
        "Relay logging initialized",
        extra={
            "environment": settings.environment,
            "log_level": settings.log_level,
            "log_format": settings.log_format,
        }
    )
