"""
Logging Module
==============

Structured logging using structlog with JSON output for production
and colored console output for development.

Usage:
    from shared.logging import get_logger, run_log_context

    logger = get_logger(__name__)

    with run_log_context(run.id, run.vendor_id):
        logger.info("verification_run_completed", outcome="verified")
"""

from shared.logging.logger import (
    get_logger,
    run_log_context,
    setup_logging,
    setup_logging_from_settings,
)


__all__ = [
    "get_logger",
    "setup_logging",
    "setup_logging_from_settings",
    "run_log_context",
]
