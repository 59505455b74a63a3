"""
Repository Interface
====================

Abstract persistence interface for the verification engine.

Implementations:
- InMemoryComplianceRepository: tests and local development
- PostgresComplianceRepository: production storage

Version: 0.1.0
"""

from abc import ABC, abstractmethod
from collections.abc import Collection
from datetime import datetime

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


class ComplianceRepository(ABC):
    """
    Abstract base class for verification engine persistence.

    All methods return detached copies; mutating a returned model does not
    change stored state until it is saved again.
    """

    # ==================== Jurisdictions ====================

    @abstractmethod
    async def get_jurisdiction(self, jurisdiction_id: str) -> Jurisdiction | None:
        """Get a jurisdiction by id."""
        ...

    @abstractmethod
    async def get_jurisdiction_by_code(self, code: str) -> Jurisdiction | None:
        """Get a jurisdiction by its (uppercase) code."""
        ...

    @abstractmethod
    async def list_jurisdictions(
        self,
        jurisdiction_type: JurisdictionType | None = None,
        coverage_statuses: Collection[CoverageStatus] | None = None,
    ) -> list[Jurisdiction]:
        """List jurisdictions, optionally filtered by type and coverage."""
        ...

    @abstractmethod
    async def list_child_jurisdictions(self, parent_id: str) -> list[Jurisdiction]:
        """List direct children of a jurisdiction."""
        ...

    @abstractmethod
    async def save_jurisdiction(self, jurisdiction: Jurisdiction) -> None:
        """Insert or replace a jurisdiction."""
        ...

    # ==================== Health Departments ====================

    @abstractmethod
    async def get_health_department(self, jurisdiction_id: str) -> HealthDepartment | None:
        """Get the health department responsible for a jurisdiction."""
        ...

    @abstractmethod
    async def list_health_departments(
        self,
        api_available: bool | None = None,
    ) -> list[HealthDepartment]:
        """List health departments, optionally only those with (or without) an API."""
        ...

    @abstractmethod
    async def save_health_department(self, department: HealthDepartment) -> None:
        """Insert or replace a health department; one per jurisdiction."""
        ...

    # ==================== Requirements ====================

    @abstractmethod
    async def get_requirement(self, requirement_id: str) -> Requirement | None:
        """Get a requirement version by id."""
        ...

    @abstractmethod
    async def list_requirements(self, jurisdiction_id: str) -> list[Requirement]:
        """List every version of every requirement in a jurisdiction."""
        ...

    @abstractmethod
    async def save_requirement(self, requirement: Requirement) -> None:
        """Insert or replace a requirement version."""
        ...

    @abstractmethod
    async def count_requirements(self) -> int:
        """Total number of stored requirement versions."""
        ...

    # ==================== Kitchens & Vendors ====================

    @abstractmethod
    async def get_kitchen(self, kitchen_id: str) -> Kitchen | None:
        ...

    @abstractmethod
    async def list_kitchens_in_jurisdiction(self, jurisdiction_id: str) -> list[Kitchen]:
        ...

    @abstractmethod
    async def save_kitchen(self, kitchen: Kitchen) -> None:
        ...

    @abstractmethod
    async def get_vendor(self, vendor_id: str) -> Vendor | None:
        ...

    @abstractmethod
    async def list_vendors(
        self,
        kitchen_ids: Collection[str] | None = None,
        statuses: Collection[VendorStatus] | None = None,
    ) -> list[Vendor]:
        """List vendors, optionally restricted to kitchens and statuses."""
        ...

    @abstractmethod
    async def count_vendors_by_status(self, tenant_id: str) -> dict[VendorStatus, int]:
        ...

    @abstractmethod
    async def save_vendor(self, vendor: Vendor) -> None:
        ...

    @abstractmethod
    async def update_vendor_verification(
        self,
        vendor_id: str,
        status: VendorStatus,
        run_id: str,
        updated_at: datetime,
        verified_at: datetime | None = None,
    ) -> None:
        """
        Write a completed run's result onto the vendor.

        Only the verification fields are touched; `last_verified_at` is
        left unchanged when `verified_at` is None.
        """
        ...

    # ==================== Documents ====================

    @abstractmethod
    async def list_documents(
        self,
        vendor_id: str,
        status: DocumentStatus | None = None,
    ) -> list[VendorDocument]:
        ...

    @abstractmethod
    async def save_document(self, document: VendorDocument) -> None:
        ...

    # ==================== Verification Runs ====================

    @abstractmethod
    async def get_run(self, run_id: str) -> VerificationRun | None:
        ...

    @abstractmethod
    async def save_run(self, run: VerificationRun) -> None:
        """Insert or replace a verification run."""
        ...

    @abstractmethod
    async def list_runs_for_vendor(self, vendor_id: str, limit: int = 50) -> list[VerificationRun]:
        """Runs for a vendor, newest first."""
        ...

    @abstractmethod
    async def list_running_runs(self, started_before: datetime | None = None) -> list[VerificationRun]:
        """Runs still in RUNNING, oldest first."""
        ...

    # ==================== Regulatory Update Log ====================

    @abstractmethod
    async def get_update_log(self, update_id: str) -> RegUpdateLog | None:
        ...

    @abstractmethod
    async def save_update_log(self, log: RegUpdateLog) -> None:
        ...

    @abstractmethod
    async def list_update_logs(
        self,
        jurisdiction_id: str | None = None,
        processed: bool | None = None,
        urgencies: Collection[Urgency] | None = None,
        newest_first: bool = False,
        limit: int | None = None,
    ) -> list[RegUpdateLog]:
        """List update logs ordered by detection time."""
        ...
