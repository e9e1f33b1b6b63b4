import logging
import sys
import os
import json
from contextvars import ContextVar
from datetime import date
from pathlib import Path
from typing import Any, Dict, Optional

from loguru import logger

# Request ID of the request being served, bound to every log line
request_id_context: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[2] / "logging_config.json"

# Used when no logging_config.json can be found (e.g. installed package)
FALLBACK_CONFIG: Dict[str, Any] = {
    "logger": {
        "log_dir": "logs",
        "filename": "student-records.log",
        "level": "info",
        "rotation": "20 MB",
        "retention": "14 days",
        "console_format": "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | {extra[request_id]} | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        "file_format": "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {extra[request_id]} | {name}:{function}:{line} - {message}",
        "use_json_logs": False,
    }
}


def get_request_id() -> Optional[str]:
    """Get the current request ID from context."""
    return request_id_context.get()


def set_request_id(request_id: str) -> None:
    """Set the request ID in context."""
    request_id_context.set(request_id)


def _patch_request_id(record) -> None:
    record["extra"]["request_id"] = get_request_id() or "app"


class InterceptHandler(logging.Handler):
    """Route records from the standard logging module into loguru."""

    loglevel_mapping = {
        50: "CRITICAL",
        40: "ERROR",
        30: "WARNING",
        20: "INFO",
        10: "DEBUG",
        0: "NOTSET",
    }

    def emit(self, record):
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = self.loglevel_mapping[record.levelno]

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


class CustomizeLogger:
    @classmethod
    def make_logger(cls, config_path: Optional[Path], environment: str = "logger"):
        config = cls.load_logging_config(config_path)
        logging_config = config.get(environment, config.get("logger"))

        return cls.customize_logging(
            log_dir=logging_config.get("log_dir"),
            filename=f"{date.today().strftime('%Y-%m-%d')}-{logging_config.get('filename')}",
            level=os.getenv("LOG_LEVEL", logging_config.get("level")),
            rotation=logging_config.get("rotation"),
            retention=logging_config.get("retention"),
            console_format=logging_config.get("console_format"),
            file_format=logging_config.get("file_format"),
            use_json_logs=logging_config.get("use_json_logs", False),
        )

    @classmethod
    def customize_logging(
        cls,
        log_dir: str,
        filename: str,
        level: str,
        rotation: str,
        retention: str,
        console_format: str,
        file_format: str,
        use_json_logs: bool = False,
    ):
        logger.remove()
        logger.configure(extra={"request_id": "app"}, patcher=_patch_request_id)

        logger.add(
            sys.stdout,
            enqueue=True,
            backtrace=True,
            level=level.upper(),
            format=console_format,
            colorize=True,
        )

        file_sink = {
            "rotation": rotation,
            "retention": retention,
            "enqueue": True,
            "backtrace": True,
            "level": level.upper(),
            "colorize": False,
        }
        if use_json_logs:
            logger.add(f"{log_dir}/{filename}", serialize=True, **file_sink)
        else:
            logger.add(f"{log_dir}/{filename}", format=file_format, **file_sink)

        cls._setup_intercept_handlers()

        return logger

    @staticmethod
    def _setup_intercept_handlers():
        logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

        for log_name in ["uvicorn", "uvicorn.error", "uvicorn.access", "fastapi"]:
            _logger = logging.getLogger(log_name)
            _logger.handlers = [InterceptHandler()]
            _logger.propagate = False

    @staticmethod
    def load_logging_config(config_path: Optional[Path]) -> Dict[str, Any]:
        if config_path is None or not config_path.is_file():
            return FALLBACK_CONFIG
        with open(config_path, encoding="utf-8") as config_file:
            return json.load(config_file)


config_path = (
    Path(os.environ["LOG_CONFIG_PATH"])
    if os.getenv("LOG_CONFIG_PATH")
    else DEFAULT_CONFIG_PATH
)
environment = (
    "production"
    if os.getenv("ENVIRONMENT", "development") == "production"
    else "logger"
)
custom_logger = CustomizeLogger.make_logger(config_path, environment)


def get_logger():
    """Logger whose records carry the request ID of the request being served."""
    return custom_logger
