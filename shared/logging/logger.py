"""
Logger Implementation
=====================

structlog configuration shared by the Celery workers and scripts.

- JSON lines when ``json_logs`` is set (production), rich console otherwise
- Every entry carries ``service``, ``version`` and a UTC ``timestamp``
- ``run_log_context`` tags entries with the verification run and vendor
- Credentials and vendor personal data are redacted before rendering

Version: 0.1.0
"""

import datetime
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger


if TYPE_CHECKING:
    from structlog.stdlib import BoundLogger


VERSION = "0.1.0"
REDACTED = "***REDACTED***"

# Substring match against lowercased keys. The last five cover vendor
# person records (owner, employees).
SENSITIVE_KEYS = frozenset(
    {
        "password",
        "secret",
        "token",
        "authorization",
        "api_key",
        "ssn",
        "tax_id",
        "date_of_birth",
        "email",
        "phone",
    }
)

QUIET_LOGGERS = ("aiokafka", "asyncio", "celery.redirected", "sqlalchemy.engine")


def censor_value(key: str, value: Any) -> Any:
    """Redact a value if its key looks sensitive, recursing into containers."""
    if any(s in key.lower() for s in SENSITIVE_KEYS):
        return REDACTED
    if isinstance(value, dict):
        return {k: censor_value(str(k), v) for k, v in value.items()}
    if isinstance(value, list):
        return [censor_value(key, item) for item in value]
    return value


def _censor_secrets(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    return {key: censor_value(key, value) for key, value in event_dict.items()}


def _service_context(service_name: str) -> Processor:
    def add_service(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service", service_name)
        event_dict.setdefault("version", VERSION)
        event_dict["timestamp"] = datetime.datetime.now(datetime.UTC).isoformat()
        return event_dict

    return add_service


def _renderer(json_logs: bool) -> tuple[Processor, Processor]:
    """Exception processor and final renderer for the chosen output."""
    if json_logs:
        return structlog.processors.format_exc_info, structlog.processors.JSONRenderer()
    return structlog.dev.set_exc_info, structlog.dev.ConsoleRenderer(
        colors=True,
        exception_formatter=structlog.dev.RichTracebackFormatter(show_locals=False, max_frames=10),
    )


def setup_logging(
    log_level: str = "INFO",
    json_logs: bool = False,
    service_name: str = "kitchen-compliance",
) -> None:
    """
    Route stdlib and structlog output through one stdout handler.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        json_logs: JSON lines instead of the console renderer
        service_name: Value of the ``service`` key on every entry
    """
    level = getattr(logging, log_level.upper())
    exc_processor, renderer = _renderer(json_logs)

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        _service_context(service_name),
        _censor_secrets,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        exc_processor,
    ]

    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def setup_logging_from_settings() -> None:
    """Configure logging from ``shared.config.settings`` (worker startup)."""
    from shared.config import settings

    setup_logging(
        log_level=settings.log_level.value,
        json_logs=settings.is_production,
        service_name=settings.service_name,
    )


def get_logger(name: str | None = None) -> "BoundLogger":
    """
    Get a structured logger.

    Example:
        logger = get_logger(__name__)
        logger.info("verification_run_created", verification_run_id="abc123")
    """
    return structlog.stdlib.get_logger(name)


@contextmanager
def run_log_context(verification_run_id: str, vendor_id: str) -> Iterator[None]:
    """
    Tag every entry logged inside the block with the run and vendor ids.

    Example:
        with run_log_context(run.id, run.vendor_id):
            logger.info("checklist_evaluated")
    """
    structlog.contextvars.bind_contextvars(
        verification_run_id=verification_run_id, vendor_id=vendor_id
    )
    try:
        yield
    finally:
        structlog.contextvars.unbind_contextvars("verification_run_id", "vendor_id")
