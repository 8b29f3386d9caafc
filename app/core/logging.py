import logging
import logging.config
import os
from app.core.config import settings

LOG_DIR = "logs"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _rotating_file(filename: str, level: str) -> dict:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "level": level,
        "formatter": "detailed",
        "filename": os.path.join(LOG_DIR, filename),
        "maxBytes": 10 * 1024 * 1024,
        "backupCount": 5,
    }


def build_logging_config(level: str = "INFO", to_file: bool = False) -> dict:
    level = level.upper()
    handlers = {
        "console": {
            "class": "logging.StreamHandler",
            "level": level,
            "formatter": "detailed",
            "stream": "ext://sys.stdout",
        },
    }
    if to_file:
        handlers["file"] = _rotating_file("app.log", level)
        handlers["error_file"] = _rotating_file("error.log", "ERROR")
    names = list(handlers)

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"detailed": {"format": LOG_FORMAT}},
        "handlers": handlers,
        "root": {"level": level, "handlers": names},
        "loggers": {
            # Cache and request logs go through the app tree only
            "app": {"level": level, "handlers": names, "propagate": False},
            "uvicorn.access": {"level": "WARNING", "handlers": ["console"], "propagate": False},
        },
    }


def configure_logging():
    if settings.LOG_TO_FILE:
        os.makedirs(LOG_DIR, exist_ok=True)
    logging.config.dictConfig(build_logging_config(settings.LOG_LEVEL, settings.LOG_TO_FILE))
