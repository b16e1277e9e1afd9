"""Structured logging configuration using structlog.

Provides JSON output for production (parseable by log aggregators),
pretty console output for development, and an append-only plain-text
log file per run.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

import structlog
from structlog.types import EventDict, WrappedLogger


def add_app_context(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add application context to all log events."""
    event_dict["app"] = "capacity-hunter"
    return event_dict


def run_log_path(logs_dir: Path, prefix: str, now: Optional[datetime] = None) -> Path:
    """Timestamped log file path for one run, e.g. logs/a1-monitor-20260101-120000.log."""
    stamp = (now or datetime.now()).strftime("%Y%m%d-%H%M%S")
    return logs_dir / f"{prefix}-{stamp}.log"


def configure_logging(
    log_level: str = "INFO",
    environment: str = "development",
    log_file: Optional[Path] = None,
) -> None:
    """Configure structlog for structured logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        environment: Environment name (development, production)
        log_file: Optional append-only log file for this run

    In production mode:
        - JSON output for machine parsing
        - ISO timestamps
        - Exception info included

    In development mode:
        - Pretty colored console output
        - Human-readable formatting

    The log file always gets uncolored console rendering (JSON in production).
    """
    log_level_int = getattr(logging, log_level.upper(), logging.INFO)

    # Shared processors for all loggers
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S"),
        structlog.processors.StackInfoRenderer(),
        add_app_context,
    ]

    is_production = environment.lower() == "production"

    if is_production:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
        file_renderer: structlog.types.Processor = renderer
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)
        file_renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=shared_processors
        + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=shared_processors,
        )
    )
    handler.setLevel(log_level_int)

    root_logger = logging.getLogger()
    # Clear existing handlers to avoid duplicates
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level_int)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processor=file_renderer,
                foreign_pre_chain=shared_processors,
            )
        )
        file_handler.setLevel(log_level_int)
        root_logger.addHandler(file_handler)

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("oci").setLevel(logging.WARNING)

    logger = structlog.get_logger(__name__)
    logger.debug(
        "Logging configured",
        log_level=log_level,
        environment=environment,
        renderer="json" if is_production else "console",
        log_file=str(log_file) if log_file else None,
    )
