"""
Clearinghouse Tasks
===================

Celery task for the periodic regulatory change sweep.

Version: 0.1.0
"""

from typing import Any

from services.regulatory_intelligence.change_detection import ClearinghouseSweep
from services.verification.cascade import RegulatoryChangeCascade
from services.verification.dispatch import CeleryRunDispatcher
from services.verification.tasks import build_run_manager
from shared.errors import RetryableError
from shared.logging import get_logger
from shared.repository import PostgresComplianceRepository
from shared.workers import celery_app, run_async


logger = get_logger(__name__)


def build_sweep() -> ClearinghouseSweep:
    """Sweep whose cascade enqueues runs on the verification queue."""
    manager = build_run_manager(dispatcher=CeleryRunDispatcher())
    repository = PostgresComplianceRepository()
    return ClearinghouseSweep(
        repository,
        cascade=RegulatoryChangeCascade(repository, manager),
    )


async def _sweep(jurisdiction_id: str | None) -> dict[str, Any]:
    result = await build_sweep().run(jurisdiction_id)
    return result.to_dict()


@celery_app.task(bind=True, max_retries=2)
def run_clearinghouse_sweep(self, jurisdiction_id: str | None = None) -> dict[str, Any]:
    """Check covered jurisdictions (or one) for regulatory changes."""
    logger.info("clearinghouse_task_started", jurisdiction_id=jurisdiction_id)
    try:
        result = run_async(_sweep(jurisdiction_id))
    except RetryableError as e:
        logger.warning("clearinghouse_task_retrying", error=e.message)
        raise self.retry(exc=e, countdown=60 * (self.request.retries + 1))
    return {"status": "success", **result}
