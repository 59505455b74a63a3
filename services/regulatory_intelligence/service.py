"""
Regulatory Intelligence Service
===============================

Read surface over the jurisdiction hierarchy and requirement catalog,
plus the regulatory update log lifecycle.

Version: 0.1.0
"""

from pydantic import BaseModel, Field

from services.regulatory_intelligence.catalog import RequirementCatalog
from services.regulatory_intelligence.hierarchy import JurisdictionHierarchy
from shared.errors import NotFoundError
from shared.logging import get_logger
from shared.models import (
    CRITICAL_URGENCIES,
    CoverageStatus,
    HealthDepartment,
    ImpactAssessment,
    Jurisdiction,
    JurisdictionType,
    KitchenType,
    LegalEntityType,
    RegUpdateLog,
    Requirement,
    UpdateSource,
    UpdateType,
    utcnow,
)
from shared.repository import ComplianceRepository


logger = get_logger(__name__)


class ChecklistQuery(BaseModel):
    """
    Checklist lookup by jurisdiction id or by address.

    `jurisdiction_id` wins when both are given.
    """

    jurisdiction_id: str | None = None
    state: str | None = None
    county: str | None = None
    city: str | None = None
    kitchen_type: KitchenType | None = None
    entity_type: LegalEntityType | None = None


class ChecklistResult(BaseModel):
    jurisdiction: Jurisdiction | None = None
    requirements: list[Requirement] = Field(default_factory=list)
    health_dept: HealthDepartment | None = None


class CoverageStats(BaseModel):
    total_jurisdictions: int = 0
    full_coverage: int = 0
    partial_coverage: int = 0
    no_coverage: int = 0
    total_requirements: int = 0


class RegulatoryIntelligenceService:
    """Jurisdiction lookups, checklists and regulatory update logs."""

    def __init__(
        self,
        repository: ComplianceRepository,
        hierarchy: JurisdictionHierarchy | None = None,
        catalog: RequirementCatalog | None = None,
    ) -> None:
        self.repository = repository
        self.hierarchy = hierarchy or JurisdictionHierarchy(repository)
        self.catalog = catalog or RequirementCatalog(repository)

    # =========================================================================
    # Jurisdictions & Checklists
    # =========================================================================

    async def get_checklist(self, query: ChecklistQuery) -> ChecklistResult:
        """
        Applicable requirements for a jurisdiction reference.

        An unresolvable reference yields an empty result rather than an
        error.
        """
        jurisdiction: Jurisdiction | None = None
        if query.jurisdiction_id:
            jurisdiction = await self.repository.get_jurisdiction(query.jurisdiction_id)
        elif query.state:
            jurisdiction = await self.hierarchy.find_by_address(
                query.state,
                county=query.county,
                city=query.city,
            )

        if jurisdiction is None:
            logger.warning(
                "checklist_jurisdiction_not_found",
                jurisdiction_id=query.jurisdiction_id,
                state=query.state,
                county=query.county,
                city=query.city,
            )
            return ChecklistResult()

        requirements = await self.catalog.find_applicable(
            jurisdiction.id,
            query.kitchen_type,
            query.entity_type,
        )
        health_dept = await self.get_health_department(jurisdiction.id)
        logger.info(
            "checklist_retrieved",
            jurisdiction_id=jurisdiction.id,
            requirement_count=len(requirements),
            has_health_dept=health_dept is not None,
        )
        return ChecklistResult(
            jurisdiction=jurisdiction,
            requirements=requirements,
            health_dept=health_dept,
        )

    async def get_health_department(self, jurisdiction_id: str) -> HealthDepartment | None:
        """The jurisdiction's own health department, if one is on record."""
        return await self.repository.get_health_department(jurisdiction_id)

    async def register_health_department(self, department: HealthDepartment) -> HealthDepartment:
        """
        Record the health department for an existing jurisdiction.

        Replaces any department previously recorded for it.

        Raises:
            NotFoundError: the jurisdiction does not exist
        """
        if await self.repository.get_jurisdiction(department.jurisdiction_id) is None:
            raise NotFoundError("Jurisdiction", department.jurisdiction_id)
        department = department.model_copy(update={"updated_at": utcnow()})
        await self.repository.save_health_department(department)
        logger.info(
            "health_department_registered",
            jurisdiction_id=department.jurisdiction_id,
            api_available=department.api_available,
        )
        return department

    async def get_jurisdiction_by_code(self, code: str) -> Jurisdiction:
        return await self.hierarchy.resolve_by_code(code)

    async def get_hierarchy(self, jurisdiction_id: str) -> list[Jurisdiction]:
        """Ancestor chain from the country down to the jurisdiction."""
        return await self.hierarchy.build_ancestor_chain(jurisdiction_id)

    async def list_jurisdictions(
        self,
        jurisdiction_type: JurisdictionType | None = None,
        coverage_status: CoverageStatus | None = None,
    ) -> list[Jurisdiction]:
        return await self.hierarchy.list_jurisdictions(jurisdiction_type, coverage_status)

    async def get_jurisdiction_requirements(
        self,
        jurisdiction_id: str,
        active_only: bool = True,
    ) -> list[Requirement]:
        await self.hierarchy.get(jurisdiction_id)
        return await self.catalog.list_for_jurisdiction(jurisdiction_id, active_only=active_only)

    # =========================================================================
    # Regulatory Update Log
    # =========================================================================

    async def log_reg_update(
        self,
        jurisdiction_id: str,
        update_type: UpdateType,
        affected_requirement_ids: list[str] | None = None,
        diff_summary: str = "",
        impact_assessment: ImpactAssessment | None = None,
        source: UpdateSource = UpdateSource.MANUAL,
    ) -> RegUpdateLog:
        """Record a detected regulatory change."""
        await self.hierarchy.get(jurisdiction_id)

        log = RegUpdateLog(
            jurisdiction_id=jurisdiction_id,
            update_type=update_type,
            affected_requirement_ids=affected_requirement_ids or [],
            diff_summary=diff_summary,
            source=source,
            impact_assessment=impact_assessment or ImpactAssessment(),
        )
        await self.repository.save_update_log(log)

        logger.info(
            "regulatory_update_logged",
            update_log_id=log.id,
            jurisdiction_id=jurisdiction_id,
            update_type=update_type.value,
            urgency=log.impact_assessment.urgency.value,
        )
        return log

    async def get_unprocessed_updates(self) -> list[RegUpdateLog]:
        """Unprocessed updates, oldest first."""
        return await self.repository.list_update_logs(processed=False)

    async def get_critical_updates(self) -> list[RegUpdateLog]:
        """Unprocessed updates with immediate or high urgency, oldest first."""
        return await self.repository.list_update_logs(
            processed=False,
            urgencies=CRITICAL_URGENCIES,
        )

    async def get_updates_for_jurisdiction(
        self,
        jurisdiction_id: str,
        limit: int = 100,
    ) -> list[RegUpdateLog]:
        """A jurisdiction's updates, newest first."""
        return await self.repository.list_update_logs(
            jurisdiction_id=jurisdiction_id,
            newest_first=True,
            limit=limit,
        )

    async def mark_update_processed(self, update_id: str) -> RegUpdateLog:
        log = await self.repository.get_update_log(update_id)
        if log is None:
            raise NotFoundError("Regulatory update", update_id)
        if not log.is_processed:
            log.processed_at = utcnow()
            await self.repository.save_update_log(log)
            logger.info("regulatory_update_processed", update_log_id=update_id)
        return log

    # =========================================================================
    # Statistics
    # =========================================================================

    async def get_coverage_stats(self) -> CoverageStats:
        jurisdictions = await self.repository.list_jurisdictions()
        stats = CoverageStats(
            total_jurisdictions=len(jurisdictions),
            total_requirements=await self.repository.count_requirements(),
        )
        for jurisdiction in jurisdictions:
            if jurisdiction.coverage_status == CoverageStatus.FULL:
                stats.full_coverage += 1
            elif jurisdiction.coverage_status == CoverageStatus.PARTIAL:
                stats.partial_coverage += 1
            else:
                stats.no_coverage += 1
        return stats
