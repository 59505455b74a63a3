"""
Celery Application
==================

Job queue for verification runs and the clearinghouse sweep.

Queues:
- verification: run execution, bounded by `verification.concurrency`
- clearinghouse: regulatory change sweeps, bounded by
  `clearinghouse.concurrency`

Start workers with:
    celery -A shared.workers.celery_app worker -Q verification
    celery -A shared.workers.celery_app worker -Q clearinghouse -c $CLEARINGHOUSE_CONCURRENCY
    celery -A shared.workers.celery_app beat

Version: 0.1.0
"""

import math

from celery import Celery, signals
from celery.schedules import crontab

from shared.config import settings
from shared.logging import setup_logging_from_settings


celery_app = Celery(
    "kitchen_compliance",
    broker=settings.broker_url,
    backend=settings.result_backend,
    include=[
        "services.verification.tasks",
        "services.regulatory_intelligence.tasks",
    ],
)

# Hard limit sits above the in-process run timeout so the run can record
# its own failure first.
_run_time_limit = math.ceil(settings.verification.timeout_seconds) + 60

celery_app.conf.update(
    # Serialization
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",

    # Timezone
    timezone=settings.clearinghouse.timezone,
    enable_utc=True,

    # Task execution
    task_track_started=True,
    task_time_limit=_run_time_limit,
    task_soft_time_limit=_run_time_limit - 15,
    task_always_eager=settings.celery.task_always_eager,

    # Worker settings; clearinghouse workers override with -c
    worker_concurrency=settings.verification.concurrency,
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    task_reject_on_worker_lost=True,

    # Result settings
    result_expires=3600,

    # Retry settings
    task_default_retry_delay=settings.verification.retry_backoff_seconds,
    task_max_retries=settings.verification.max_retries,

    # Routing
    task_default_queue="verification",
    task_routes={
        "services.verification.tasks.*": {"queue": "verification"},
        "services.regulatory_intelligence.tasks.*": {"queue": "clearinghouse"},
    },
)

celery_app.conf.beat_schedule = {
    "clearinghouse-sweep": {
        "task": "services.regulatory_intelligence.tasks.run_clearinghouse_sweep",
        "schedule": crontab(minute=0, hour=settings.clearinghouse.cron_hours),
    },
    "reverify-due-vendors": {
        "task": "services.verification.tasks.sweep_due_vendors",
        "schedule": crontab(minute=0, hour=settings.verification.sweep_hour),
    },
    "fail-stale-runs": {
        "task": "services.verification.tasks.fail_stale_runs",
        "schedule": crontab(minute="*/10"),
    },
}


@signals.setup_logging.connect
def configure_worker_logging(**kwargs) -> None:
    """Replace Celery's logging setup with the structlog one."""
    setup_logging_from_settings()
