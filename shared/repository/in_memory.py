"""
In-Memory Repository
====================

In-memory implementation of ComplianceRepository.

Suitable for local development and testing. All data is stored in
dictionaries and lost when the process terminates.

Version: 0.1.0
"""

from collections import Counter
from collections.abc import Collection
from datetime import datetime
from typing import TypeVar

from pydantic import BaseModel

from shared.models import (
    CoverageStatus,
    DocumentStatus,
    HealthDepartment,
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


M = TypeVar("M", bound=BaseModel)


def _copy(model: M | None) -> M | None:
    return model.model_copy(deep=True) if model is not None else None


class InMemoryComplianceRepository(ComplianceRepository):
    """
    In-memory implementation of ComplianceRepository.

    Stores copies of every model so callers cannot mutate stored state.
    """

    def __init__(self) -> None:
        self._jurisdictions: dict[str, Jurisdiction] = {}
        # Keyed by jurisdiction id
        self._health_departments: dict[str, HealthDepartment] = {}
        self._requirements: dict[str, Requirement] = {}
        self._kitchens: dict[str, Kitchen] = {}
        self._vendors: dict[str, Vendor] = {}
        self._documents: dict[str, VendorDocument] = {}
        self._runs: dict[str, VerificationRun] = {}
        self._update_logs: dict[str, RegUpdateLog] = {}

    # ==================== Jurisdictions ====================

    async def get_jurisdiction(self, jurisdiction_id: str) -> Jurisdiction | None:
        return _copy(self._jurisdictions.get(jurisdiction_id))

    async def get_jurisdiction_by_code(self, code: str) -> Jurisdiction | None:
        for jurisdiction in self._jurisdictions.values():
            if jurisdiction.code == code:
                return _copy(jurisdiction)
        return None

    async def list_jurisdictions(
        self,
        jurisdiction_type: JurisdictionType | None = None,
        coverage_statuses: Collection[CoverageStatus] | None = None,
    ) -> list[Jurisdiction]:
        return [
            _copy(j)
            for j in self._jurisdictions.values()
            if (jurisdiction_type is None or j.type == jurisdiction_type)
            and (coverage_statuses is None or j.coverage_status in coverage_statuses)
        ]

    async def list_child_jurisdictions(self, parent_id: str) -> list[Jurisdiction]:
        return [_copy(j) for j in self._jurisdictions.values() if j.parent_id == parent_id]

    async def save_jurisdiction(self, jurisdiction: Jurisdiction) -> None:
        self._jurisdictions[jurisdiction.id] = _copy(jurisdiction)

    # ==================== Health Departments ====================

    async def get_health_department(self, jurisdiction_id: str) -> HealthDepartment | None:
        return _copy(self._health_departments.get(jurisdiction_id))

    async def list_health_departments(
        self,
        api_available: bool | None = None,
    ) -> list[HealthDepartment]:
        return [
            _copy(d)
            for d in self._health_departments.values()
            if api_available is None or d.api_available == api_available
        ]

    async def save_health_department(self, department: HealthDepartment) -> None:
        self._health_departments[department.jurisdiction_id] = _copy(department)

    # ==================== Requirements ====================

    async def get_requirement(self, requirement_id: str) -> Requirement | None:
        return _copy(self._requirements.get(requirement_id))

    async def list_requirements(self, jurisdiction_id: str) -> list[Requirement]:
        return [
            _copy(r) for r in self._requirements.values() if r.jurisdiction_id == jurisdiction_id
        ]

    async def save_requirement(self, requirement: Requirement) -> None:
        self._requirements[requirement.id] = _copy(requirement)

    async def count_requirements(self) -> int:
        return len(self._requirements)

    # ==================== Kitchens & Vendors ====================

    async def get_kitchen(self, kitchen_id: str) -> Kitchen | None:
        return _copy(self._kitchens.get(kitchen_id))

    async def list_kitchens_in_jurisdiction(self, jurisdiction_id: str) -> list[Kitchen]:
        return [
            _copy(k) for k in self._kitchens.values() if k.jurisdiction_id == jurisdiction_id
        ]

    async def save_kitchen(self, kitchen: Kitchen) -> None:
        self._kitchens[kitchen.id] = _copy(kitchen)

    async def get_vendor(self, vendor_id: str) -> Vendor | None:
        return _copy(self._vendors.get(vendor_id))

    async def list_vendors(
        self,
        kitchen_ids: Collection[str] | None = None,
        statuses: Collection[VendorStatus] | None = None,
    ) -> list[Vendor]:
        return [
            _copy(v)
            for v in self._vendors.values()
            if (kitchen_ids is None or v.kitchen_id in kitchen_ids)
            and (statuses is None or v.status in statuses)
        ]

    async def count_vendors_by_status(self, tenant_id: str) -> dict[VendorStatus, int]:
        counts = Counter(v.status for v in self._vendors.values() if v.tenant_id == tenant_id)
        return dict(counts)

    async def save_vendor(self, vendor: Vendor) -> None:
        self._vendors[vendor.id] = _copy(vendor)

    async def update_vendor_verification(
        self,
        vendor_id: str,
        status: VendorStatus,
        run_id: str,
        updated_at: datetime,
        verified_at: datetime | None = None,
    ) -> None:
        vendor = self._vendors.get(vendor_id)
        if vendor is None:
            return
        vendor.status = status
        vendor.current_verification_run_id = run_id
        vendor.verification_status_updated_at = updated_at
        if verified_at is not None:
            vendor.last_verified_at = verified_at

    # ==================== Documents ====================

    async def list_documents(
        self,
        vendor_id: str,
        status: DocumentStatus | None = None,
    ) -> list[VendorDocument]:
        return [
            _copy(d)
            for d in self._documents.values()
            if d.vendor_id == vendor_id and (status is None or d.status == status)
        ]

    async def save_document(self, document: VendorDocument) -> None:
        self._documents[document.id] = _copy(document)

    # ==================== Verification Runs ====================

    async def get_run(self, run_id: str) -> VerificationRun | None:
        return _copy(self._runs.get(run_id))

    async def save_run(self, run: VerificationRun) -> None:
        self._runs[run.id] = _copy(run)

    async def list_runs_for_vendor(self, vendor_id: str, limit: int = 50) -> list[VerificationRun]:
        runs = [r for r in self._runs.values() if r.vendor_id == vendor_id]
        runs.sort(key=lambda r: (r.started_at, r.created_at), reverse=True)
        return [_copy(r) for r in runs[:limit]]

    async def list_running_runs(self, started_before: datetime | None = None) -> list[VerificationRun]:
        runs = [
            r
            for r in self._runs.values()
            if r.status == RunStatus.RUNNING
            and (started_before is None or r.started_at < started_before)
        ]
        runs.sort(key=lambda r: r.started_at)
        return [_copy(r) for r in runs]

    # ==================== Regulatory Update Log ====================

    async def get_update_log(self, update_id: str) -> RegUpdateLog | None:
        return _copy(self._update_logs.get(update_id))

    async def save_update_log(self, log: RegUpdateLog) -> None:
        self._update_logs[log.id] = _copy(log)

    async def list_update_logs(
        self,
        jurisdiction_id: str | None = None,
        processed: bool | None = None,
        urgencies: Collection[Urgency] | None = None,
        newest_first: bool = False,
        limit: int | None = None,
    ) -> list[RegUpdateLog]:
        logs = [
            log
            for log in self._update_logs.values()
            if (jurisdiction_id is None or log.jurisdiction_id == jurisdiction_id)
            and (processed is None or log.is_processed == processed)
            and (urgencies is None or log.impact_assessment.urgency in urgencies)
        ]
        logs.sort(key=lambda log: log.detected_at, reverse=newest_first)
        if limit is not None:
            logs = logs[:limit]
        return [_copy(log) for log in logs]
