"""
Kitchen Compliance Shared Library
=================================

Common utilities, configuration and abstractions shared across the
verification services.

Modules:
    - config: Configuration management with Pydantic Settings
    - logging: Structured logging with structlog
    - errors: Error hierarchy
    - database: PostgreSQL, Redis and Kafka clients
    - repository: Persistence interface and implementations
    - models: Shared Pydantic models
    - workers: Celery application

Version: 0.1.0
"""

__version__ = "0.1.0"

from shared.config import settings
from shared.logging import get_logger, setup_logging

__all__ = [
    "settings",
    "get_logger",
    "setup_logging",
    "__version__",
]
