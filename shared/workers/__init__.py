"""
Workers Module
==============

Celery application and helpers for running async code in tasks.
"""

from shared.workers.celery_app import celery_app
from shared.workers.utils import close_clients, run_async


__all__ = [
    "celery_app",
    "close_clients",
    "run_async",
]
