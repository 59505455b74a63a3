"""Tests for the regulatory intelligence read surface and update log."""

from datetime import timedelta

import pytest

from services.regulatory_intelligence.service import (
    ChecklistQuery,
    RegulatoryIntelligenceService,
)
from shared.errors import NotFoundError
from shared.models import (
    ImpactAssessment,
    Jurisdiction,
    KitchenType,
    LegalEntityType,
    Priority,
    RegUpdateLog,
    RequirementType,
    UpdateType,
    Urgency,
    utcnow,
)
from shared.repository import InMemoryComplianceRepository
from tests.factories import make_health_department, make_requirement


@pytest.fixture
def service(repository: InMemoryComplianceRepository) -> RegulatoryIntelligenceService:
    return RegulatoryIntelligenceService(repository)


class TestGetChecklist:
    """Tests for checklist queries."""

    @pytest.mark.asyncio
    async def test_includes_health_department(
        self,
        service: RegulatoryIntelligenceService,
        repository: InMemoryComplianceRepository,
        jurisdictions: dict[str, Jurisdiction],
    ) -> None:
        county_id = jurisdictions["la_county"].id
        department = make_health_department(
            county_id,
            name="LA County Environmental Health",
            inspection_portal_url="https://ehservices.publichealth.example.gov/",
        )
        await repository.save_health_department(department)

        result = await service.get_checklist(ChecklistQuery(jurisdiction_id=county_id))

        assert result.health_dept is not None
        assert result.health_dept.id == department.id
        assert result.health_dept.name == "LA County Environmental Health"
        assert str(result.health_dept.inspection_portal_url).startswith("https://ehservices.")

    @pytest.mark.asyncio
    async def test_health_department_is_not_inherited(
        self,
        service: RegulatoryIntelligenceService,
        repository: InMemoryComplianceRepository,
        jurisdictions: dict[str, Jurisdiction],
    ) -> None:
        """A city without its own department gets none, even if the county has one."""
        await repository.save_health_department(
            make_health_department(jurisdictions["la_county"].id)
        )

        result = await service.get_checklist(
            ChecklistQuery(jurisdiction_id=jurisdictions["la_city"].id)
        )

        assert result.jurisdiction is not None
        assert result.health_dept is None

    @pytest.mark.asyncio
    async def test_by_jurisdiction_id(
        self,
        service: RegulatoryIntelligenceService,
        repository: InMemoryComplianceRepository,
        jurisdictions: dict[str, Jurisdiction],
    ) -> None:
        city_id = jurisdictions["la_city"].id
        permit = make_requirement(city_id, RequirementType.PERMIT)
        ghost = make_requirement(
            city_id, RequirementType.INSPECTION, kitchen_types=[KitchenType.GHOST]
        )
        await repository.save_requirement(permit)
        await repository.save_requirement(ghost)

        result = await service.get_checklist(
            ChecklistQuery(
                jurisdiction_id=city_id,
                kitchen_type=KitchenType.SHARED,
                entity_type=LegalEntityType.LLC,
            )
        )

        assert result.jurisdiction is not None
        assert result.jurisdiction.id == city_id
        assert [r.id for r in result.requirements] == [permit.id]
        assert result.health_dept is None

    @pytest.mark.asyncio
    async def test_by_address(
        self,
        service: RegulatoryIntelligenceService,
        repository: InMemoryComplianceRepository,
        jurisdictions: dict[str, Jurisdiction],
    ) -> None:
        county_id = jurisdictions["la_county"].id
        await repository.save_requirement(make_requirement(county_id))

        result = await service.get_checklist(ChecklistQuery(state="ca", county="Los Angeles"))

        assert result.jurisdiction is not None
        assert result.jurisdiction.id == county_id
        assert len(result.requirements) == 1

    @pytest.mark.asyncio
    async def test_unresolvable_reference_is_empty(
        self,
        service: RegulatoryIntelligenceService,
        jurisdictions: dict[str, Jurisdiction],
    ) -> None:
        result = await service.get_checklist(ChecklistQuery(jurisdiction_id="missing"))
        assert result.jurisdiction is None
        assert result.requirements == []

        result = await service.get_checklist(ChecklistQuery())
        assert result.jurisdiction is None


class TestHealthDepartments:
    """Tests for health department registration."""

    @pytest.mark.asyncio
    async def test_register_and_get(
        self,
        service: RegulatoryIntelligenceService,
        jurisdictions: dict[str, Jurisdiction],
    ) -> None:
        county_id = jurisdictions["la_county"].id

        stored = await service.register_health_department(
            make_health_department(county_id, api_available=True)
        )

        fetched = await service.get_health_department(county_id)
        assert fetched is not None
        assert fetched.id == stored.id
        assert fetched.api_available

    @pytest.mark.asyncio
    async def test_register_replaces_previous(
        self,
        service: RegulatoryIntelligenceService,
        repository: InMemoryComplianceRepository,
        jurisdictions: dict[str, Jurisdiction],
    ) -> None:
        county_id = jurisdictions["la_county"].id
        await service.register_health_department(make_health_department(county_id, name="Old"))
        await service.register_health_department(make_health_department(county_id, name="New"))

        departments = await repository.list_health_departments()
        assert [d.name for d in departments] == ["New"]

    @pytest.mark.asyncio
    async def test_register_unknown_jurisdiction(
        self,
        service: RegulatoryIntelligenceService,
    ) -> None:
        with pytest.raises(NotFoundError):
            await service.register_health_department(make_health_department("missing"))


class TestLookups:
    """Tests for jurisdiction lookups."""

    @pytest.mark.asyncio
    async def test_get_hierarchy(
        self,
        service: RegulatoryIntelligenceService,
        jurisdictions: dict[str, Jurisdiction],
    ) -> None:
        chain = await service.get_hierarchy(jurisdictions["la_county"].id)
        assert [j.code for j in chain] == ["US", "US-CA", "US-CA-LAC"]

    @pytest.mark.asyncio
    async def test_get_jurisdiction_requirements(
        self,
        service: RegulatoryIntelligenceService,
        repository: InMemoryComplianceRepository,
        jurisdictions: dict[str, Jurisdiction],
    ) -> None:
        city_id = jurisdictions["la_city"].id
        low = make_requirement(city_id, RequirementType.REGISTRATION, priority=Priority.LOW)
        critical = make_requirement(city_id, RequirementType.PERMIT, priority=Priority.CRITICAL)
        retired = make_requirement(
            city_id,
            RequirementType.LICENSE,
            effective_from=utcnow() - timedelta(days=60),
            effective_to=utcnow() - timedelta(days=1),
        )
        for r in (low, critical, retired):
            await repository.save_requirement(r)

        active = await service.get_jurisdiction_requirements(city_id)
        everything = await service.get_jurisdiction_requirements(city_id, active_only=False)

        assert [r.id for r in active] == [critical.id, low.id]
        assert len(everything) == 3

    @pytest.mark.asyncio
    async def test_requirements_for_unknown_jurisdiction(
        self,
        service: RegulatoryIntelligenceService,
    ) -> None:
        with pytest.raises(NotFoundError):
            await service.get_jurisdiction_requirements("missing")


class TestUpdateLog:
    """Tests for the regulatory update log lifecycle."""

    @pytest.mark.asyncio
    async def test_log_and_process(
        self,
        service: RegulatoryIntelligenceService,
        jurisdictions: dict[str, Jurisdiction],
    ) -> None:
        log = await service.log_reg_update(
            jurisdictions["la_city"].id,
            UpdateType.NEW_REQUIREMENT,
            diff_summary="New allergen labeling rule",
            impact_assessment=ImpactAssessment(urgency=Urgency.HIGH),
        )
        assert not log.is_processed
        assert [u.id for u in await service.get_unprocessed_updates()] == [log.id]

        processed = await service.mark_update_processed(log.id)

        assert processed.is_processed
        assert await service.get_unprocessed_updates() == []

    @pytest.mark.asyncio
    async def test_mark_unknown_update(self, service: RegulatoryIntelligenceService) -> None:
        with pytest.raises(NotFoundError):
            await service.mark_update_processed("missing")

    @pytest.mark.asyncio
    async def test_log_for_unknown_jurisdiction(
        self,
        service: RegulatoryIntelligenceService,
    ) -> None:
        with pytest.raises(NotFoundError):
            await service.log_reg_update("missing", UpdateType.CONTACT_UPDATED)

    @pytest.mark.asyncio
    async def test_critical_updates(
        self,
        service: RegulatoryIntelligenceService,
        repository: InMemoryComplianceRepository,
        jurisdictions: dict[str, Jurisdiction],
    ) -> None:
        """Only unprocessed immediate/high updates, oldest first."""
        city_id = jurisdictions["la_city"].id
        now = utcnow()

        def log(urgency: Urgency, minutes_ago: int, processed: bool = False) -> RegUpdateLog:
            return RegUpdateLog(
                jurisdiction_id=city_id,
                update_type=UpdateType.REQUIREMENT_MODIFIED,
                impact_assessment=ImpactAssessment(urgency=urgency),
                detected_at=now - timedelta(minutes=minutes_ago),
                processed_at=now if processed else None,
            )

        immediate = log(Urgency.IMMEDIATE, 5)
        high = log(Urgency.HIGH, 10)
        medium = log(Urgency.MEDIUM, 15)
        done = log(Urgency.IMMEDIATE, 20, processed=True)
        for entry in (immediate, high, medium, done):
            await repository.save_update_log(entry)

        critical = await service.get_critical_updates()

        assert [u.id for u in critical] == [high.id, immediate.id]

    @pytest.mark.asyncio
    async def test_updates_for_jurisdiction_newest_first(
        self,
        service: RegulatoryIntelligenceService,
        repository: InMemoryComplianceRepository,
        jurisdictions: dict[str, Jurisdiction],
    ) -> None:
        city_id = jurisdictions["la_city"].id
        now = utcnow()
        older = RegUpdateLog(
            jurisdiction_id=city_id,
            update_type=UpdateType.NEW_REQUIREMENT,
            detected_at=now - timedelta(days=2),
        )
        newer = RegUpdateLog(
            jurisdiction_id=city_id,
            update_type=UpdateType.CONTACT_UPDATED,
            detected_at=now - timedelta(days=1),
        )
        other = RegUpdateLog(
            jurisdiction_id=jurisdictions["orange"].id,
            update_type=UpdateType.NEW_REQUIREMENT,
        )
        for entry in (older, newer, other):
            await repository.save_update_log(entry)

        updates = await service.get_updates_for_jurisdiction(city_id)
        assert [u.id for u in updates] == [newer.id, older.id]

        limited = await service.get_updates_for_jurisdiction(city_id, limit=1)
        assert [u.id for u in limited] == [newer.id]


class TestCoverageStats:
    """Tests for coverage statistics."""

    @pytest.mark.asyncio
    async def test_counts(
        self,
        service: RegulatoryIntelligenceService,
        repository: InMemoryComplianceRepository,
        jurisdictions: dict[str, Jurisdiction],
    ) -> None:
        await repository.save_requirement(make_requirement(jurisdictions["la_city"].id))

        stats = await service.get_coverage_stats()

        assert stats.total_jurisdictions == 5
        assert stats.full_coverage == 2
        assert stats.partial_coverage == 1
        assert stats.no_coverage == 2
        assert stats.total_requirements == 1
