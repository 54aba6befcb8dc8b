import logging
import logging.handlers
import structlog
import sys
import time
from pathlib import Path
from typing import Any, Dict


def setup_logging(log_level: str = "INFO", log_to_file: bool = False) -> None:
    """Set up logging configuration for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_to_file: Whether to log to files in addition to console
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    # Configure structlog
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.set_exc_info,
            # JSON formatting for file logs
            (
                structlog.processors.JSONRenderer()
                if log_to_file
                else structlog.dev.ConsoleRenderer(colors=False)
            ),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(console_handler)

    # python-telegram-bot and httpx log every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("telegram").setLevel(max(level, logging.INFO))

    if log_to_file:
        logs_dir = Path("logs")
        logs_dir.mkdir(exist_ok=True)

        app_handler = logging.handlers.RotatingFileHandler(
            logs_dir / "app.log", maxBytes=10 * 1024 * 1024, backupCount=5  # 10MB
        )
        app_handler.setLevel(logging.INFO)
        app_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"
            )
        )
        root_logger.addHandler(app_handler)

        # Error-only log file for critical issues
        error_handler = logging.handlers.RotatingFileHandler(
            logs_dir / "errors.log", maxBytes=5 * 1024 * 1024, backupCount=10  # 5MB
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"
            )
        )
        root_logger.addHandler(error_handler)


def get_relay_logger(name: str = "relay") -> structlog.stdlib.BoundLogger:
    """Get a structured logger for relay pipeline events."""
    return structlog.get_logger(name)


class RelayLogContext:
    """Binds relay context to a structured logger and times the run.

    Usage:
        with RelayLogContext(url=url, chat_id=chat_id) as log:
            log.step("probing")
            ...
            log.finish("done", bytes=1024)
    """

    def __init__(self, **context: Any):
        self.context: Dict[str, Any] = context
        self.logger = get_relay_logger().bind(**context)
        self.start_time: float = 0.0

    def __enter__(self) -> "RelayLogContext":
        self.start_time = time.monotonic()
        self.logger.info("relay started")
        return self

    def step(self, state: str, **details: Any) -> None:
        self.logger.info("relay state", state=state, **details)

    def finish(self, state: str, **details: Any) -> None:
        self.logger.info(
            "relay finished",
            state=state,
            duration_seconds=round(self.elapsed(), 3),
            **details,
        )

    def elapsed(self) -> float:
        return time.monotonic() - self.start_time

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type is not None:
            self.logger.error(
                "relay crashed",
                error_type=exc_type.__name__,
                error_message=str(exc_val),
                duration_seconds=round(self.elapsed(), 3),
            )
