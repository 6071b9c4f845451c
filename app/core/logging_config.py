"""
Logging configuration for the AI Study Assistant API.

Console output plus two rotating files under ``logs/``: everything, and
errors only. Files roll over at 10 MB with five backups.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_DIR = Path(__file__).parent.parent.parent / "logs"

MAX_LOG_SIZE = 10 * 1024 * 1024  # 10 MB
BACKUP_COUNT = 5

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(filename)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers and the lowest level we want from each
NOISY_LOGGERS = {
    "uvicorn": logging.INFO,
    "uvicorn.access": logging.WARNING,  # RequestLogger covers access lines
    "sqlalchemy.engine": logging.WARNING,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "anthropic": logging.WARNING,
    "apscheduler": logging.WARNING,
    "PyPDF2": logging.ERROR,  # Warns on every slightly malformed page
}


def _formatter() -> logging.Formatter:
    return logging.Formatter(LOG_FORMAT, DATE_FORMAT)


def get_file_handler(filename: str, level: int = logging.DEBUG) -> RotatingFileHandler:
    """Rotating handler writing to ``LOG_DIR/filename``; the directory is created on demand."""
    LOG_DIR.mkdir(exist_ok=True)
    handler = RotatingFileHandler(
        LOG_DIR / filename,
        maxBytes=MAX_LOG_SIZE,
        backupCount=BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(_formatter())
    return handler


def get_console_handler(level: int = logging.INFO) -> logging.StreamHandler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(_formatter())
    return handler


def resolve_level(log_level: str, environment: str) -> int:
    """Explicit level wins; otherwise DEBUG in development and WARNING in production."""
    if not log_level:
        log_level = "WARNING" if environment == "production" else "DEBUG"
    return getattr(logging, log_level.upper(), logging.INFO)


def setup_logging(
    app_name: str = "study_assistant",
    log_level: str = "",
    environment: str = "development",
    enable_console: bool = True,
    enable_file: bool = True,
) -> logging.Logger:
    """
    Configure the root logger once at import of ``main``.

    Args:
        app_name: Prefix for the log file names
        log_level: Console threshold; empty means pick one from ``environment``
        environment: ``development`` or ``production``
        enable_console: Log to stdout
        enable_file: Log to rotating files under ``LOG_DIR`` (off in tests)

    Returns:
        The configured root logger
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # Handlers do the filtering
    root_logger.handlers.clear()

    if enable_console:
        root_logger.addHandler(get_console_handler(resolve_level(log_level, environment)))

    if enable_file:
        root_logger.addHandler(get_file_handler(f"{app_name}.log", logging.DEBUG))
        root_logger.addHandler(get_file_handler(f"{app_name}_error.log", logging.ERROR))

    for name, level in NOISY_LOGGERS.items():
        logging.getLogger(name).setLevel(level)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class RequestLogger:
    """One line per HTTP request, at a level that follows the status class."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def log_request(
        self,
        method: str,
        path: str,
        status_code: int,
        duration_ms: float,
        client_ip: str = None,
        user_id: int = None,
        pipeline_stage: str = None,
    ):
        fields = []
        if client_ip:
            fields.append(f"ip={client_ip}")
        if user_id:
            fields.append(f"user={user_id}")
        if pipeline_stage:
            fields.append(f"stage={pipeline_stage}")

        line = f"{method} {path} -> {status_code} ({duration_ms:.2f}ms) {' | '.join(fields)}".rstrip()

        if status_code >= 500:
            self.logger.error(line)
        elif status_code >= 400:
            self.logger.warning(line)
        else:
            self.logger.info(line)
