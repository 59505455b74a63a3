"""
Verification Run Manager
========================

Owns the verification run lifecycle:

    create -> RUNNING -> execute -> COMPLETED (outcome) | FAILED (error)

Execution loads the vendor, its kitchen's jurisdiction, the applicable
requirements and the vendor's approved documents, then evaluates and
resolves an outcome. Completed runs update the vendor's status; failed
runs never touch the vendor.

Version: 0.1.0
"""

import asyncio
import math
from dataclasses import dataclass
from datetime import datetime, timedelta

import pydantic
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from services.regulatory_intelligence.catalog import RequirementCatalog
from services.regulatory_intelligence.hierarchy import JurisdictionHierarchy
from services.verification.dispatch import RunDispatcher
from services.verification.events import OutcomePublisher
from services.verification.locks import LocalVendorLock, VendorLock
from services.verification.outcome import OutcomeDecision, OutcomeResolver
from services.verification.rules import RuleEvaluator, RuleThresholds, collect_expiry_notices
from shared.config import VerificationSettings, settings
from shared.errors import (
    ComplianceError,
    DataIntegrityError,
    DownstreamUnavailableError,
    EvaluationTimeoutError,
    NotFoundError,
    RetryableError,
)
from shared.logging import get_logger, run_log_context
from shared.models import (
    DocumentStatus,
    Jurisdiction,
    Kitchen,
    Outcome,
    OutcomeEvent,
    Requirement,
    RunStatus,
    TriggerSource,
    Vendor,
    VendorDocument,
    VendorStatus,
    VerificationChecklist,
    VerificationRun,
    ValidationIssue,
    utcnow,
)
from shared.repository import ComplianceRepository


logger = get_logger(__name__)


# Vendors the daily sweep re-checks; pending/rejected/suspended wait for
# new documents or manual action instead.
SWEEPABLE_STATUSES = frozenset(
    {VendorStatus.VERIFIED, VendorStatus.NEEDS_REVIEW, VendorStatus.EXPIRED}
)


@dataclass
class VerificationContext:
    """Everything a run needs, loaded before evaluation starts."""

    vendor: Vendor
    kitchen: Kitchen
    jurisdiction_chain: list[Jurisdiction]
    requirements: list[Requirement]
    documents: list[VendorDocument]

    @property
    def jurisdiction(self) -> Jurisdiction:
        return self.jurisdiction_chain[-1]


class VerificationRunManager:
    """
    Creates and executes verification runs.

    Without a dispatcher, `trigger_verification` executes the run inline
    and returns it in its terminal state. With one, it returns the run
    while still RUNNING and a worker calls `execute_run`.
    """

    def __init__(
        self,
        repository: ComplianceRepository,
        *,
        catalog: RequirementCatalog | None = None,
        hierarchy: JurisdictionHierarchy | None = None,
        evaluator: RuleEvaluator | None = None,
        resolver: OutcomeResolver | None = None,
        publisher: OutcomePublisher | None = None,
        locks: VendorLock | None = None,
        dispatcher: RunDispatcher | None = None,
        config: VerificationSettings | None = None,
    ) -> None:
        self.repository = repository
        self.config = config or settings.verification
        self.catalog = catalog or RequirementCatalog(repository)
        self.hierarchy = hierarchy or JurisdictionHierarchy(repository)
        self.evaluator = evaluator or RuleEvaluator(RuleThresholds.from_settings(self.config))
        self.resolver = resolver or OutcomeResolver(self.config.needs_review_threshold)
        self.publisher = publisher
        self.locks = locks or LocalVendorLock()
        self.dispatcher = dispatcher

    # =========================================================================
    # Trigger / Create
    # =========================================================================

    async def trigger_verification(
        self,
        vendor_id: str,
        tenant_id: str,
        source: TriggerSource | str = TriggerSource.MANUAL,
        user_id: str | None = None,
    ) -> VerificationRun:
        """
        Start a verification run for a tenant's vendor.

        Raises:
            NotFoundError: the vendor does not exist or belongs to another
                tenant; no run is created
        """
        run = await self.create_run(vendor_id, tenant_id, source, user_id)
        if self.dispatcher is None:
            return await self.execute_run(run.id)
        await self.dispatcher.dispatch(run)
        return run

    async def create_run(
        self,
        vendor_id: str,
        tenant_id: str,
        source: TriggerSource | str = TriggerSource.MANUAL,
        user_id: str | None = None,
    ) -> VerificationRun:
        """Create a RUNNING run with an empty checklist."""
        vendor = await self._get_vendor_for_tenant(vendor_id, tenant_id)

        now = utcnow()
        run = VerificationRun(
            vendor_id=vendor.id,
            tenant_id=tenant_id,
            triggered_by=TriggerSource(source),
            triggered_by_user_id=user_id,
            started_at=now,
            created_at=now,
        )
        await self.repository.save_run(run)

        logger.info(
            "verification_run_created",
            verification_run_id=run.id,
            vendor_id=vendor.id,
            tenant_id=tenant_id,
            triggered_by=run.triggered_by.value,
        )
        return run

    # =========================================================================
    # Execute
    # =========================================================================

    async def execute_run(self, run_id: str, final_attempt: bool = True) -> VerificationRun:
        """
        Evaluate a RUNNING run and move it to a terminal state.

        Args:
            run_id: Run to execute
            final_attempt: When False, retryable errors propagate (leaving
                the run RUNNING) so the job queue can retry it

        Returns:
            The run, COMPLETED or FAILED. Already-terminal runs are returned
            unchanged, except that a COMPLETED run whose vendor update never
            landed gets it applied now.
        """
        run = await self._get_run(run_id)
        if run.is_terminal:
            logger.info(
                "verification_run_already_finished",
                verification_run_id=run.id,
                status=run.status.value,
            )
            if run.status == RunStatus.COMPLETED:
                with run_log_context(run.id, run.vendor_id):
                    await self._reapply_completion(run, final_attempt)
            return run

        with run_log_context(run.id, run.vendor_id):
            return await self._execute_locked(run, final_attempt)

    async def _execute_locked(self, run: VerificationRun, final_attempt: bool) -> VerificationRun:
        run_id = run.id
        try:
            async with self.locks.hold(
                run.vendor_id,
                wait_seconds=self.config.lock_wait_seconds,
                ttl_seconds=self._lock_ttl_seconds,
            ):
                # Another worker may have finished it while we waited
                run = await self._get_run(run_id)
                if run.is_terminal:
                    return run
                return await self._evaluate(run)

        except (NotFoundError, DataIntegrityError, EvaluationTimeoutError) as e:
            return await self._fail(run, e)

        except RetryableError as e:
            if final_attempt:
                run = await self._fail(run, e)
                if run.status == RunStatus.COMPLETED:
                    logger.error(
                        "verification_run_vendor_update_lost",
                        error_code=e.error_code,
                        error=e.message,
                    )
                return run
            logger.warning(
                "verification_run_retry_requested",
                error_code=e.error_code,
                error=e.message,
            )
            raise

    async def _reapply_completion(self, run: VerificationRun, final_attempt: bool) -> None:
        """Apply the vendor update and event of a completed run if they were lost."""
        try:
            async with self.locks.hold(
                run.vendor_id,
                wait_seconds=self.config.lock_wait_seconds,
                ttl_seconds=self._lock_ttl_seconds,
            ):
                if await self._update_vendor(run, utcnow()):
                    logger.info("verification_run_vendor_update_reapplied")
                    await self._publish(run)
        except RetryableError as e:
            if not final_attempt:
                raise
            logger.error(
                "verification_run_vendor_update_lost",
                error_code=e.error_code,
                error=e.message,
            )

    @property
    def _lock_ttl_seconds(self) -> int:
        return math.ceil(self.config.timeout_seconds) + 30

    async def _evaluate(self, run: VerificationRun) -> VerificationRun:
        now = utcnow()
        try:
            async with asyncio.timeout(self.config.timeout_seconds):
                context = await self._load_context(run, now)
                checklist = self.evaluator.evaluate(
                    context.vendor,
                    context.documents,
                    context.requirements,
                    now,
                )
                decision = self.resolver.resolve(checklist)
        except TimeoutError as e:
            raise EvaluationTimeoutError(self.config.timeout_seconds) from e

        notices = collect_expiry_notices(
            checklist,
            context.documents,
            self.config.expiry_notice_days,
            now,
        )
        return await self._complete(run, checklist, decision, notices)

    @retry(
        retry=retry_if_exception_type(DownstreamUnavailableError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.2, max=2),
        reraise=True,
    )
    async def _load_context(self, run: VerificationRun, now: datetime) -> VerificationContext:
        """Load vendor, kitchen, jurisdiction, requirements and documents."""
        try:
            vendor = await self.repository.get_vendor(run.vendor_id)
            if vendor is None or vendor.tenant_id != run.tenant_id:
                raise NotFoundError("Vendor", run.vendor_id)

            if not vendor.kitchen_id:
                raise DataIntegrityError(f"Vendor {vendor.id} has no kitchen reference")
            kitchen = await self.repository.get_kitchen(vendor.kitchen_id)
            if kitchen is None:
                raise DataIntegrityError(
                    f"Kitchen {vendor.kitchen_id} referenced by vendor {vendor.id} does not exist"
                )
            if not kitchen.jurisdiction_id:
                raise DataIntegrityError(f"Kitchen {kitchen.id} has no jurisdiction")

            try:
                chain = await self.hierarchy.build_ancestor_chain(kitchen.jurisdiction_id)
            except NotFoundError:
                raise DataIntegrityError(
                    f"Kitchen {kitchen.id} references missing jurisdiction "
                    f"{kitchen.jurisdiction_id}"
                ) from None

            requirements = await self.catalog.find_applicable(
                kitchen.jurisdiction_id,
                kitchen.type,
                vendor.legal_entity_type,
                at=now,
            )
            documents = await self.repository.list_documents(
                vendor.id,
                status=DocumentStatus.APPROVED,
            )
        except pydantic.ValidationError as e:
            raise DataIntegrityError(f"Stored record failed validation: {e}") from e

        logger.debug(
            "verification_context_loaded",
            jurisdiction_code=chain[-1].code,
            requirement_count=len(requirements),
            document_count=len(documents),
        )
        return VerificationContext(
            vendor=vendor,
            kitchen=kitchen,
            jurisdiction_chain=chain,
            requirements=requirements,
            documents=documents,
        )

    async def _complete(
        self,
        run: VerificationRun,
        checklist: VerificationChecklist,
        decision: OutcomeDecision,
        notices: list[ValidationIssue],
    ) -> VerificationRun:
        now = utcnow()
        run.complete(checklist, decision.outcome, decision.reason, now)
        run.validation_errors.extend(notices)
        await self.repository.save_run(run)

        await self._update_vendor(run, now)
        await self._publish(run)

        logger.info(
            "verification_run_completed",
            outcome=decision.outcome.value,
            completion_percentage=checklist.completion_percentage,
            total_items=checklist.total_items,
            reason=decision.reason,
        )
        return run

    async def _update_vendor(self, run: VerificationRun, now: datetime) -> bool:
        """
        Point the vendor at a completed run and copy its outcome.

        Returns:
            False when there was nothing to do: the vendor is gone, already
            points at this run, or points at a newer one
        """
        vendor = await self.repository.get_vendor(run.vendor_id)
        if vendor is None:
            return False

        current_id = vendor.current_verification_run_id
        if current_id == run.id:
            return False
        if current_id:
            current = await self.repository.get_run(current_id)
            if current is not None and current.started_at > run.started_at:
                logger.info(
                    "verification_run_superseded",
                    current_run_id=current_id,
                )
                return False

        await self.repository.update_vendor_verification(
            vendor.id,
            status=VendorStatus(run.outcome.value),
            run_id=run.id,
            updated_at=now,
            verified_at=now if run.outcome == Outcome.VERIFIED else None,
        )
        return True

    async def _publish(self, run: VerificationRun) -> None:
        if self.publisher is None:
            return
        try:
            await self.publisher.publish(OutcomeEvent.from_run(run))
        except Exception:
            logger.exception("outcome_event_publish_failed")

    async def _fail(self, run: VerificationRun, error: Exception) -> VerificationRun:
        if isinstance(error, ComplianceError):
            message = error.message
        else:
            message = str(error) or error.__class__.__name__
        return await self.fail_run(run.id, message, error_code=getattr(error, "error_code", None))

    async def fail_run(
        self,
        run_id: str,
        message: str,
        error_code: str | None = None,
    ) -> VerificationRun:
        """Move a RUNNING run to FAILED. The vendor is not touched."""
        run = await self._get_run(run_id)
        if run.is_terminal:
            return run
        run.fail(message, utcnow())
        await self.repository.save_run(run)
        logger.warning(
            "verification_run_failed",
            verification_run_id=run.id,
            vendor_id=run.vendor_id,
            error_code=error_code,
            error=message,
        )
        return run

    async def fail_stale_runs(self, now: datetime | None = None) -> int:
        """
        Fail runs left RUNNING longer than the stale threshold.

        Returns:
            Number of runs failed
        """
        now = now or utcnow()
        cutoff = now - timedelta(minutes=self.config.stale_run_minutes)
        stale = await self.repository.list_running_runs(started_before=cutoff)
        for run in stale:
            await self.fail_run(
                run.id,
                f"Verification run abandoned: no result after "
                f"{self.config.stale_run_minutes} minutes",
                error_code="STALE_RUN",
            )
        if stale:
            logger.warning("stale_verification_runs_failed", count=len(stale))
        return len(stale)

    # =========================================================================
    # Queries
    # =========================================================================

    async def get_run(self, run_id: str, tenant_id: str) -> VerificationRun:
        """Get a run owned by the tenant; other tenants' runs are not found."""
        run = await self.repository.get_run(run_id)
        if run is None or run.tenant_id != tenant_id:
            raise NotFoundError("Verification run", run_id)
        return run

    async def get_history(
        self,
        vendor_id: str,
        tenant_id: str,
        limit: int = 50,
    ) -> list[VerificationRun]:
        """A vendor's runs, newest first."""
        await self._get_vendor_for_tenant(vendor_id, tenant_id)
        return await self.repository.list_runs_for_vendor(vendor_id, limit=limit)

    async def get_latest_run(self, vendor_id: str, tenant_id: str) -> VerificationRun | None:
        runs = await self.get_history(vendor_id, tenant_id, limit=1)
        return runs[0] if runs else None

    async def get_verification_stats(self, tenant_id: str) -> dict[str, int]:
        """Vendor counts per status for a tenant, plus the total."""
        counts = await self.repository.count_vendors_by_status(tenant_id)
        stats = {status.value: counts.get(status, 0) for status in VendorStatus}
        stats["total"] = sum(counts.values())
        return stats

    def needs_reverification(
        self,
        vendor: Vendor,
        max_days: int | None = None,
        now: datetime | None = None,
    ) -> bool:
        """True if never verified, verified too long ago, or not currently verified."""
        if vendor.last_verified_at is None:
            return True
        max_days = self.config.reverification_max_days if max_days is None else max_days
        days_since = ((now or utcnow()) - vendor.last_verified_at).days
        if days_since > max_days:
            return True
        return vendor.status != VendorStatus.VERIFIED

    async def sweep_due_vendors(self, now: datetime | None = None) -> int:
        """
        Trigger scheduled runs for vendors due for re-verification.

        Returns:
            Number of runs started
        """
        now = now or utcnow()
        vendors = await self.repository.list_vendors(statuses=SWEEPABLE_STATUSES)
        started = 0
        for vendor in vendors:
            if not self.needs_reverification(vendor, now=now):
                continue
            try:
                await self.trigger_verification(
                    vendor.id,
                    vendor.tenant_id,
                    TriggerSource.SCHEDULED,
                )
                started += 1
            except ComplianceError as e:
                logger.error(
                    "scheduled_verification_failed",
                    vendor_id=vendor.id,
                    error=e.message,
                )
        logger.info("scheduled_verification_sweep_completed", started=started)
        return started

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _get_run(self, run_id: str) -> VerificationRun:
        run = await self.repository.get_run(run_id)
        if run is None:
            raise NotFoundError("Verification run", run_id)
        return run

    async def _get_vendor_for_tenant(self, vendor_id: str, tenant_id: str) -> Vendor:
        vendor = await self.repository.get_vendor(vendor_id)
        if vendor is None or vendor.tenant_id != tenant_id:
            raise NotFoundError("Vendor", vendor_id)
        return vendor
