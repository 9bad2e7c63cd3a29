"""
Structured Logger Module

Configures structlog for JSON-formatted structured logging with correlation IDs.
Every batch run binds its own correlation ID; each researcher analysis derives
a child ID from it so concurrent records can be traced independently.

Example Usage:
    from scholar_matcher.utils.logger import get_logger

    logger = get_logger(
        correlation_id="a1b2c3d4-e5f6-7890-abcd-ef1234567890",
        phase="batch_analysis",
        component="batch_runner",
    )

    logger.info("Batch started", total_records=12, concurrency=3)
    logger.warning("Retrying analysis", record_id="9f1c", attempt=2, delay=2.0)
    logger.error("Analysis failed", record_id="9f1c", error="No publications found")

Log Levels:
    - DEBUG: Prompt sizes, raw collaborator payload sizes, state transitions
    - INFO: Batch progress, record completion, persistence
    - WARNING: Retries, stale results discarded, skipped records
    - ERROR: Records moved to ERROR, unexpected worker exceptions
"""

import logging
import os
import re
import sys
import uuid
from pathlib import Path
from typing import Optional
import structlog
from structlog.types import BindableLogger, EventDict, WrappedLogger


DEFAULT_LOG_FILE = "logs/scholar-matcher.log"
MAX_VALUE_LENGTH = 500
MASK = "***MASKED***"
SENSITIVE_KEY = re.compile(
    r"(?:^|[_-])(?:password|api_key|token|secret|credential|auth)(?:$|[_-])", re.IGNORECASE
)


def mask_credentials(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Replace the value of any credential-looking field with ***MASKED***.

    A field is sensitive when one of its "_" or "-" separated parts is a
    sensitive word (access_token, serpapi_api_key, auth-header).
    """
    for key in event_dict:
        if SENSITIVE_KEY.search(key):
            event_dict[key] = MASK

    return event_dict


def truncate_long_values(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """
    Processor to cap string values (LLM responses, payloads) at MAX_VALUE_LENGTH.

    The "event" message itself is never truncated.
    """
    for key, value in event_dict.items():
        if key == "event" or not isinstance(value, str):
            continue
        if len(value) > MAX_VALUE_LENGTH:
            event_dict[key] = f"{value[:MAX_VALUE_LENGTH]}...[truncated {len(value) - MAX_VALUE_LENGTH} chars]"

    return event_dict


def configure_logging(
    log_file: Optional[str] = None, log_level: Optional[str] = None
) -> None:
    """
    Configure structlog with JSON output and file logging.

    Args:
        log_file: Path to log file (default: $SCHOLAR_MATCHER_LOG_FILE or logs/scholar-matcher.log)
        log_level: Logging level (default: $SCHOLAR_MATCHER_LOG_LEVEL or INFO)
    """
    log_file = log_file or os.getenv("SCHOLAR_MATCHER_LOG_FILE", DEFAULT_LOG_FILE)
    log_level = log_level or os.getenv("SCHOLAR_MATCHER_LOG_LEVEL", "INFO")

    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level.upper()),
        handlers=[logging.FileHandler(log_file), logging.StreamHandler(sys.stdout)],
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            mask_credentials,
            truncate_long_values,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(
    correlation_id: Optional[str] = None,
    phase: Optional[str] = None,
    component: Optional[str] = None,
) -> BindableLogger:
    """
    Get structured logger with bound context.

    Args:
        correlation_id: Correlation ID for request tracing (generates UUID if not provided)
        phase: Pipeline phase (e.g., "batch_analysis", "record_store")
        component: Component name (e.g., "analysis_pipeline", "serpapi_source")

    Returns:
        BoundLogger with correlation_id, phase, and component bound to context
    """
    if correlation_id is None:
        correlation_id = str(uuid.uuid4())

    logger = structlog.get_logger()

    if correlation_id:
        logger = logger.bind(correlation_id=correlation_id)
    if phase:
        logger = logger.bind(phase=phase)
    if component:
        logger = logger.bind(component=component)

    return logger


# Initialize logging on module import with default settings
configure_logging()
