"""
Run Dispatch
============

Hands created verification runs to a worker for execution.

Version: 0.1.0
"""

import asyncio
from abc import ABC, abstractmethod

from shared.logging import get_logger
from shared.models import VerificationRun


logger = get_logger(__name__)

VERIFICATION_QUEUE = "verification"


def run_task_id(run_id: str) -> str:
    """Celery task id for a run; re-enqueueing the same run is a no-op."""
    return f"verification-run-{run_id}"


class RunDispatcher(ABC):
    """Schedules execution of a created run."""

    @abstractmethod
    async def dispatch(self, run: VerificationRun) -> None:
        ...


class CeleryRunDispatcher(RunDispatcher):
    """Enqueues run execution on the Celery verification queue."""

    async def dispatch(self, run: VerificationRun) -> None:
        from services.verification.tasks import execute_verification_run

        await asyncio.to_thread(
            execute_verification_run.apply_async,
            args=[run.id],
            task_id=run_task_id(run.id),
            queue=VERIFICATION_QUEUE,
        )
        logger.info(
            "verification_run_enqueued",
            verification_run_id=run.id,
            vendor_id=run.vendor_id,
        )
