"""
Verification Tasks
==================

Celery tasks that execute verification runs and the periodic sweeps
around them.

Version: 0.1.0
"""

from typing import Any

from services.verification.dispatch import CeleryRunDispatcher, RunDispatcher
from services.verification.events import KafkaOutcomePublisher
from services.verification.locks import RedisVendorLock
from services.verification.service import VerificationRunManager
from shared.config import settings
from shared.errors import RetryableError
from shared.logging import get_logger
from shared.models import TriggerSource
from shared.repository import PostgresComplianceRepository
from shared.workers import celery_app, run_async


logger = get_logger(__name__)


def build_run_manager(dispatcher: RunDispatcher | None = None) -> VerificationRunManager:
    """Run manager wired to Postgres, Redis locks and Kafka."""
    return VerificationRunManager(
        PostgresComplianceRepository(),
        publisher=KafkaOutcomePublisher() if settings.kafka.enabled else None,
        locks=RedisVendorLock(),
        dispatcher=dispatcher,
    )


def retry_countdown(retries: int) -> int:
    """Exponential backoff in seconds for the given retry count."""
    return settings.verification.retry_backoff_seconds * 2 ** (retries + 1)


# =============================================================================
# Run Execution
# =============================================================================


async def _execute(run_id: str, final_attempt: bool) -> dict[str, Any]:
    run = await build_run_manager().execute_run(run_id, final_attempt=final_attempt)
    return {
        "verification_run_id": run.id,
        "status": run.status.value,
        "outcome": run.outcome.value if run.outcome else None,
    }


async def _fail(run_id: str, message: str) -> None:
    await build_run_manager().fail_run(run_id, message, error_code="TASK_FAILED")


@celery_app.task(bind=True, max_retries=settings.verification.max_retries)
def execute_verification_run(self, run_id: str) -> dict[str, Any]:
    """
    Execute a created verification run.

    Retryable errors (store unavailable, vendor busy) are retried with
    exponential backoff; the last attempt records them on the run instead.
    Unexpected errors are retried the same way and fail the run once
    retries are exhausted.
    """
    final_attempt = self.request.retries >= self.max_retries
    logger.info(
        "verification_task_started",
        verification_run_id=run_id,
        attempt=self.request.retries + 1,
    )

    try:
        return run_async(_execute(run_id, final_attempt))

    except RetryableError as e:
        logger.warning(
            "verification_task_retrying",
            verification_run_id=run_id,
            error_code=e.error_code,
            error=e.message,
        )
        raise self.retry(exc=e, countdown=retry_countdown(self.request.retries))

    except Exception as e:
        if not final_attempt:
            logger.warning(
                "verification_task_retrying",
                verification_run_id=run_id,
                error=str(e),
            )
            raise self.retry(exc=e, countdown=retry_countdown(self.request.retries))

        logger.error(
            "verification_task_exhausted",
            verification_run_id=run_id,
            error=str(e),
        )
        run_async(_fail(run_id, f"Verification failed after {self.max_retries} retries: {e}"))
        raise


# =============================================================================
# Triggers & Sweeps
# =============================================================================


async def _trigger(
    vendor_id: str,
    tenant_id: str,
    source: str,
    user_id: str | None,
) -> dict[str, Any]:
    manager = build_run_manager(dispatcher=CeleryRunDispatcher())
    run = await manager.trigger_verification(vendor_id, tenant_id, source, user_id)
    return {"verification_run_id": run.id, "status": run.status.value}


@celery_app.task(bind=True, max_retries=1)
def trigger_verification(
    self,
    vendor_id: str,
    tenant_id: str,
    source: str = TriggerSource.MANUAL.value,
    user_id: str | None = None,
) -> dict[str, Any]:
    """Create a run for a vendor and enqueue its execution."""
    try:
        return run_async(_trigger(vendor_id, tenant_id, source, user_id))
    except RetryableError as e:
        raise self.retry(exc=e, countdown=retry_countdown(self.request.retries))


async def _sweep_due() -> int:
    manager = build_run_manager(dispatcher=CeleryRunDispatcher())
    return await manager.sweep_due_vendors()


@celery_app.task(bind=True, max_retries=1)
def sweep_due_vendors(self) -> dict[str, Any]:
    """Daily re-verification of vendors whose last verification is stale."""
    try:
        started = run_async(_sweep_due())
    except RetryableError as e:
        raise self.retry(exc=e, countdown=60)
    return {"status": "success", "started": started}


async def _fail_stale() -> int:
    return await build_run_manager().fail_stale_runs()


@celery_app.task(bind=True, max_retries=1)
def fail_stale_runs(self) -> dict[str, Any]:
    """Fail runs abandoned in RUNNING by crashed workers."""
    try:
        failed = run_async(_fail_stale())
    except RetryableError as e:
        raise self.retry(exc=e, countdown=60)
    return {"status": "success", "failed": failed}
