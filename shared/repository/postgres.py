"""
PostgreSQL Repository
=====================

ComplianceRepository backed by PostgreSQL via SQLAlchemy async sessions.

Connection-level failures are raised as DownstreamUnavailableError so
callers and the job queue can retry them.

Version: 0.1.0
"""

import functools
from collections.abc import Awaitable, Callable, Collection
from datetime import datetime
from typing import Any, ParamSpec, TypeVar

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shared.database.postgres import PostgresClient, postgres_session
from shared.errors import DownstreamUnavailableError
from shared.logging import get_logger
from shared.models import (
    CoverageStatus,
    DocumentStatus,
    HealthDepartment,
    ImpactAssessment,
    Jurisdiction,
    JurisdictionType,
    Kitchen,
    RegUpdateLog,
    Requirement,
    Urgency,
    Vendor,
    VendorDocument,
    VendorStatus,
    VerificationRun,
)
from shared.models.verification import RunStatus
from shared.repository.base import ComplianceRepository
from shared.repository.tables import (
    HealthDepartmentRow,
    JurisdictionRow,
    KitchenRow,
    RegUpdateLogRow,
    RequirementRow,
    VendorDocumentRow,
    VendorRow,
    VerificationRunRow,
)


logger = get_logger(__name__)

P = ParamSpec("P")
R = TypeVar("R")


def _downstream(func_: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
    """Translate connection failures into DownstreamUnavailableError."""

    @functools.wraps(func_)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        try:
            return await func_(*args, **kwargs)
        except (OperationalError, InterfaceError, OSError) as e:
            logger.warning(
                "postgres_unavailable",
                operation=func_.__name__,
                error=str(e),
            )
            raise DownstreamUnavailableError(
                f"Database unavailable during {func_.__name__}",
                service="postgres",
            ) from e

    return wrapper


# =============================================================================
# Row Mapping
# =============================================================================


def _jurisdiction_from_row(row: JurisdictionRow) -> Jurisdiction:
    return Jurisdiction(
        id=row.id,
        code=row.code,
        name=row.name,
        type=row.type,
        parent_id=row.parent_id,
        full_path=row.full_path,
        metadata=row.details or {},
        created_at=row.created_at,
    )


def _jurisdiction_to_row(j: Jurisdiction) -> JurisdictionRow:
    return JurisdictionRow(
        id=j.id,
        code=j.code,
        name=j.name,
        type=j.type.value,
        parent_id=j.parent_id,
        full_path=j.full_path,
        details=j.metadata.model_dump(mode="json"),
        created_at=j.created_at,
    )


def _columns(row: Any) -> dict[str, Any]:
    return {c.key: getattr(row, c.key) for c in row.__table__.columns}


def _health_department_to_row(d: HealthDepartment) -> HealthDepartmentRow:
    data = d.model_dump(mode="json")
    data.update(created_at=d.created_at, updated_at=d.updated_at)
    return HealthDepartmentRow(**data)


def _requirement_to_row(r: Requirement) -> RequirementRow:
    data = r.model_dump(mode="json")
    data.update(
        effective_from=r.effective_from,
        effective_to=r.effective_to,
        created_at=r.created_at,
    )
    return RequirementRow(**data)


def _kitchen_to_row(k: Kitchen) -> KitchenRow:
    return KitchenRow(**k.model_dump(mode="json"))


def _vendor_to_row(v: Vendor) -> VendorRow:
    data = v.model_dump(mode="json")
    data.update(
        last_verified_at=v.last_verified_at,
        verification_status_updated_at=v.verification_status_updated_at,
        created_at=v.created_at,
    )
    return VendorRow(**data)


def _document_to_row(d: VendorDocument) -> VendorDocumentRow:
    data = d.model_dump(mode="json")
    data.update(
        issue_date=d.issue_date,
        expiration_date=d.expiration_date,
        created_at=d.created_at,
    )
    return VendorDocumentRow(**data)


def _run_to_row(run: VerificationRun) -> VerificationRunRow:
    data = run.model_dump(mode="json")
    data.update(
        completion_percentage=run.checklist.completion_percentage,
        started_at=run.started_at,
        completed_at=run.completed_at,
        created_at=run.created_at,
    )
    return VerificationRunRow(**data)


def _run_from_row(row: VerificationRunRow) -> VerificationRun:
    data = _columns(row)
    data.pop("completion_percentage")
    return VerificationRun.model_validate(data)


def _update_log_to_row(log: RegUpdateLog) -> RegUpdateLogRow:
    impact = log.impact_assessment
    return RegUpdateLogRow(
        id=log.id,
        jurisdiction_id=log.jurisdiction_id,
        update_type=log.update_type.value,
        affected_requirement_ids=list(log.affected_requirement_ids),
        diff_summary=log.diff_summary,
        source=log.source.value,
        affected_vendor_count=impact.affected_vendor_count,
        requires_reverification=impact.requires_reverification,
        urgency=impact.urgency.value,
        detected_at=log.detected_at,
        processed_at=log.processed_at,
    )


def _update_log_from_row(row: RegUpdateLogRow) -> RegUpdateLog:
    return RegUpdateLog(
        id=row.id,
        jurisdiction_id=row.jurisdiction_id,
        update_type=row.update_type,
        affected_requirement_ids=row.affected_requirement_ids or [],
        diff_summary=row.diff_summary,
        source=row.source,
        impact_assessment=ImpactAssessment(
            affected_vendor_count=row.affected_vendor_count,
            requires_reverification=row.requires_reverification,
            urgency=row.urgency,
        ),
        detected_at=row.detected_at,
        processed_at=row.processed_at,
    )


# =============================================================================
# Repository
# =============================================================================


class PostgresComplianceRepository(ComplianceRepository):
    """
    PostgreSQL implementation of ComplianceRepository.

    Each call runs in its own short session; the engine never holds a
    transaction open across an evaluation.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
        self._session_factory = session_factory or PostgresClient.get_session_factory()

    def _session(self):  # type: ignore[no-untyped-def]
        return postgres_session(self._session_factory)

    # ==================== Jurisdictions ====================

    @_downstream
    async def get_jurisdiction(self, jurisdiction_id: str) -> Jurisdiction | None:
        async with self._session() as session:
            row = await session.get(JurisdictionRow, jurisdiction_id)
            return _jurisdiction_from_row(row) if row else None

    @_downstream
    async def get_jurisdiction_by_code(self, code: str) -> Jurisdiction | None:
        async with self._session() as session:
            result = await session.execute(
                select(JurisdictionRow).where(JurisdictionRow.code == code)
            )
            row = result.scalar_one_or_none()
            return _jurisdiction_from_row(row) if row else None

    @_downstream
    async def list_jurisdictions(
        self,
        jurisdiction_type: JurisdictionType | None = None,
        coverage_statuses: Collection[CoverageStatus] | None = None,
    ) -> list[Jurisdiction]:
        query = select(JurisdictionRow)
        if jurisdiction_type is not None:
            query = query.where(JurisdictionRow.type == jurisdiction_type.value)
        async with self._session() as session:
            result = await session.execute(query)
            jurisdictions = [_jurisdiction_from_row(row) for row in result.scalars()]
        if coverage_statuses is not None:
            jurisdictions = [j for j in jurisdictions if j.coverage_status in coverage_statuses]
        return jurisdictions

    @_downstream
    async def list_child_jurisdictions(self, parent_id: str) -> list[Jurisdiction]:
        async with self._session() as session:
            result = await session.execute(
                select(JurisdictionRow).where(JurisdictionRow.parent_id == parent_id)
            )
            return [_jurisdiction_from_row(row) for row in result.scalars()]

    @_downstream
    async def save_jurisdiction(self, jurisdiction: Jurisdiction) -> None:
        async with self._session() as session:
            await session.merge(_jurisdiction_to_row(jurisdiction))

    # ==================== Health Departments ====================

    @_downstream
    async def get_health_department(self, jurisdiction_id: str) -> HealthDepartment | None:
        async with self._session() as session:
            result = await session.execute(
                select(HealthDepartmentRow).where(
                    HealthDepartmentRow.jurisdiction_id == jurisdiction_id
                )
            )
            row = result.scalar_one_or_none()
            return HealthDepartment.model_validate(_columns(row)) if row else None

    @_downstream
    async def list_health_departments(
        self,
        api_available: bool | None = None,
    ) -> list[HealthDepartment]:
        query = select(HealthDepartmentRow)
        if api_available is not None:
            query = query.where(HealthDepartmentRow.api_available == api_available)
        async with self._session() as session:
            result = await session.execute(query)
            return [HealthDepartment.model_validate(_columns(row)) for row in result.scalars()]

    @_downstream
    async def save_health_department(self, department: HealthDepartment) -> None:
        async with self._session() as session:
            # Replaces any other department recorded for the jurisdiction
            await session.execute(
                delete(HealthDepartmentRow).where(
                    HealthDepartmentRow.jurisdiction_id == department.jurisdiction_id,
                    HealthDepartmentRow.id != department.id,
                )
            )
            await session.merge(_health_department_to_row(department))

    # ==================== Requirements ====================

    @_downstream
    async def get_requirement(self, requirement_id: str) -> Requirement | None:
        async with self._session() as session:
            row = await session.get(RequirementRow, requirement_id)
            return Requirement.model_validate(_columns(row)) if row else None

    @_downstream
    async def list_requirements(self, jurisdiction_id: str) -> list[Requirement]:
        async with self._session() as session:
            result = await session.execute(
                select(RequirementRow).where(RequirementRow.jurisdiction_id == jurisdiction_id)
            )
            return [Requirement.model_validate(_columns(row)) for row in result.scalars()]

    @_downstream
    async def save_requirement(self, requirement: Requirement) -> None:
        async with self._session() as session:
            await session.merge(_requirement_to_row(requirement))

    @_downstream
    async def count_requirements(self) -> int:
        async with self._session() as session:
            result = await session.execute(select(func.count()).select_from(RequirementRow))
            return int(result.scalar_one())

    # ==================== Kitchens & Vendors ====================

    @_downstream
    async def get_kitchen(self, kitchen_id: str) -> Kitchen | None:
        async with self._session() as session:
            row = await session.get(KitchenRow, kitchen_id)
            return Kitchen.model_validate(_columns(row)) if row else None

    @_downstream
    async def list_kitchens_in_jurisdiction(self, jurisdiction_id: str) -> list[Kitchen]:
        async with self._session() as session:
            result = await session.execute(
                select(KitchenRow).where(KitchenRow.jurisdiction_id == jurisdiction_id)
            )
            return [Kitchen.model_validate(_columns(row)) for row in result.scalars()]

    @_downstream
    async def save_kitchen(self, kitchen: Kitchen) -> None:
        async with self._session() as session:
            await session.merge(_kitchen_to_row(kitchen))

    @_downstream
    async def get_vendor(self, vendor_id: str) -> Vendor | None:
        async with self._session() as session:
            row = await session.get(VendorRow, vendor_id)
            return Vendor.model_validate(_columns(row)) if row else None

    @_downstream
    async def list_vendors(
        self,
        kitchen_ids: Collection[str] | None = None,
        statuses: Collection[VendorStatus] | None = None,
    ) -> list[Vendor]:
        query = select(VendorRow)
        if kitchen_ids is not None:
            query = query.where(VendorRow.kitchen_id.in_(list(kitchen_ids)))
        if statuses is not None:
            query = query.where(VendorRow.status.in_([s.value for s in statuses]))
        async with self._session() as session:
            result = await session.execute(query)
            return [Vendor.model_validate(_columns(row)) for row in result.scalars()]

    @_downstream
    async def count_vendors_by_status(self, tenant_id: str) -> dict[VendorStatus, int]:
        async with self._session() as session:
            result = await session.execute(
                select(VendorRow.status, func.count())
                .where(VendorRow.tenant_id == tenant_id)
                .group_by(VendorRow.status)
            )
            return {VendorStatus(status): int(count) for status, count in result.all()}

    @_downstream
    async def save_vendor(self, vendor: Vendor) -> None:
        async with self._session() as session:
            await session.merge(_vendor_to_row(vendor))

    @_downstream
    async def update_vendor_verification(
        self,
        vendor_id: str,
        status: VendorStatus,
        run_id: str,
        updated_at: datetime,
        verified_at: datetime | None = None,
    ) -> None:
        values: dict[str, Any] = {
            "status": status.value,
            "current_verification_run_id": run_id,
            "verification_status_updated_at": updated_at,
        }
        if verified_at is not None:
            values["last_verified_at"] = verified_at
        async with self._session() as session:
            await session.execute(
                update(VendorRow).where(VendorRow.id == vendor_id).values(**values)
            )

    # ==================== Documents ====================

    @_downstream
    async def list_documents(
        self,
        vendor_id: str,
        status: DocumentStatus | None = None,
    ) -> list[VendorDocument]:
        query = select(VendorDocumentRow).where(VendorDocumentRow.vendor_id == vendor_id)
        if status is not None:
            query = query.where(VendorDocumentRow.status == status.value)
        async with self._session() as session:
            result = await session.execute(query)
            return [VendorDocument.model_validate(_columns(row)) for row in result.scalars()]

    @_downstream
    async def save_document(self, document: VendorDocument) -> None:
        async with self._session() as session:
            await session.merge(_document_to_row(document))

    # ==================== Verification Runs ====================

    @_downstream
    async def get_run(self, run_id: str) -> VerificationRun | None:
        async with self._session() as session:
            row = await session.get(VerificationRunRow, run_id)
            return _run_from_row(row) if row else None

    @_downstream
    async def save_run(self, run: VerificationRun) -> None:
        async with self._session() as session:
            await session.merge(_run_to_row(run))

    @_downstream
    async def list_runs_for_vendor(self, vendor_id: str, limit: int = 50) -> list[VerificationRun]:
        async with self._session() as session:
            result = await session.execute(
                select(VerificationRunRow)
                .where(VerificationRunRow.vendor_id == vendor_id)
                .order_by(VerificationRunRow.started_at.desc(), VerificationRunRow.created_at.desc())
                .limit(limit)
            )
            return [_run_from_row(row) for row in result.scalars()]

    @_downstream
    async def list_running_runs(self, started_before: datetime | None = None) -> list[VerificationRun]:
        query = select(VerificationRunRow).where(
            VerificationRunRow.status == RunStatus.RUNNING.value
        )
        if started_before is not None:
            query = query.where(VerificationRunRow.started_at < started_before)
        async with self._session() as session:
            result = await session.execute(query.order_by(VerificationRunRow.started_at.asc()))
            return [_run_from_row(row) for row in result.scalars()]

    # ==================== Regulatory Update Log ====================

    @_downstream
    async def get_update_log(self, update_id: str) -> RegUpdateLog | None:
        async with self._session() as session:
            row = await session.get(RegUpdateLogRow, update_id)
            return _update_log_from_row(row) if row else None

    @_downstream
    async def save_update_log(self, log: RegUpdateLog) -> None:
        async with self._session() as session:
            await session.merge(_update_log_to_row(log))

    @_downstream
    async def list_update_logs(
        self,
        jurisdiction_id: str | None = None,
        processed: bool | None = None,
        urgencies: Collection[Urgency] | None = None,
        newest_first: bool = False,
        limit: int | None = None,
    ) -> list[RegUpdateLog]:
        query = select(RegUpdateLogRow)
        if jurisdiction_id is not None:
            query = query.where(RegUpdateLogRow.jurisdiction_id == jurisdiction_id)
        if processed is True:
            query = query.where(RegUpdateLogRow.processed_at.is_not(None))
        elif processed is False:
            query = query.where(RegUpdateLogRow.processed_at.is_(None))
        if urgencies is not None:
            query = query.where(RegUpdateLogRow.urgency.in_([u.value for u in urgencies]))
        order = RegUpdateLogRow.detected_at.desc() if newest_first else RegUpdateLogRow.detected_at.asc()
        query = query.order_by(order)
        if limit is not None:
            query = query.limit(limit)
        async with self._session() as session:
            result = await session.execute(query)
            return [_update_log_from_row(row) for row in result.scalars()]
