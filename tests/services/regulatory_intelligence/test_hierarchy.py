"""Tests for the jurisdiction hierarchy."""

import pytest

from services.regulatory_intelligence.hierarchy import JurisdictionHierarchy, sanitize_state_code
from shared.errors import DataIntegrityError, HierarchyError, NotFoundError
from shared.models import CoverageStatus, Jurisdiction, JurisdictionType
from shared.repository import InMemoryComplianceRepository
from tests.factories import make_jurisdiction


class TestSanitizeStateCode:
    """Tests for state code sanitization."""

    def test_uppercases(self) -> None:
        assert sanitize_state_code("ca") == "CA"

    def test_strips_non_letters(self) -> None:
        """Injection-style input reduces to letters only."""
        assert sanitize_state_code("C.*A$") == "CA"
        assert sanitize_state_code("  n y ") == "NY"

    def test_truncates_long_input(self) -> None:
        assert sanitize_state_code("californiaaaa") == "CAL"

    def test_empty_when_no_letters(self) -> None:
        assert sanitize_state_code("123.*") == ""


class TestAncestorChain:
    """Tests for build_ancestor_chain."""

    @pytest.mark.asyncio
    async def test_chain_from_city(
        self,
        hierarchy: JurisdictionHierarchy,
        jurisdictions: dict[str, Jurisdiction],
    ) -> None:
        """Chain runs from the country down to the queried node."""
        chain = await hierarchy.build_ancestor_chain(jurisdictions["la_city"].id)

        assert [j.code for j in chain] == ["US", "US-CA", "US-CA-LAC", "US-CA-LA"]
        assert chain[0].type == JurisdictionType.COUNTRY

    @pytest.mark.asyncio
    async def test_chain_for_root(
        self,
        hierarchy: JurisdictionHierarchy,
        jurisdictions: dict[str, Jurisdiction],
    ) -> None:
        chain = await hierarchy.build_ancestor_chain(jurisdictions["us"].id)
        assert [j.code for j in chain] == ["US"]

    @pytest.mark.asyncio
    async def test_unknown_jurisdiction(self, hierarchy: JurisdictionHierarchy) -> None:
        with pytest.raises(NotFoundError):
            await hierarchy.build_ancestor_chain("missing")

    @pytest.mark.asyncio
    async def test_cycle_is_detected(
        self,
        repository: InMemoryComplianceRepository,
        hierarchy: JurisdictionHierarchy,
    ) -> None:
        """A parent cycle raises instead of looping forever."""
        a = Jurisdiction(id="a", code="X-A", name="A", type=JurisdictionType.STATE, parent_id="b")
        b = Jurisdiction(id="b", code="X-B", name="B", type=JurisdictionType.COUNTY, parent_id="a")
        await repository.save_jurisdiction(a)
        await repository.save_jurisdiction(b)

        with pytest.raises(DataIntegrityError, match="cycle"):
            await hierarchy.build_ancestor_chain("a")

    @pytest.mark.asyncio
    async def test_dangling_parent(
        self,
        repository: InMemoryComplianceRepository,
        hierarchy: JurisdictionHierarchy,
    ) -> None:
        orphan = Jurisdiction(
            code="X-ORPHAN", name="Orphan", type=JurisdictionType.CITY, parent_id="gone"
        )
        await repository.save_jurisdiction(orphan)

        with pytest.raises(DataIntegrityError, match="missing parent"):
            await hierarchy.build_ancestor_chain(orphan.id)

    @pytest.mark.asyncio
    async def test_root_must_be_country(
        self,
        repository: InMemoryComplianceRepository,
        hierarchy: JurisdictionHierarchy,
    ) -> None:
        state = Jurisdiction(code="X-ST", name="Floating State", type=JurisdictionType.STATE)
        await repository.save_jurisdiction(state)

        with pytest.raises(DataIntegrityError, match="not a country"):
            await hierarchy.build_ancestor_chain(state.id)


class TestLookups:
    """Tests for code, state and address lookups."""

    @pytest.mark.asyncio
    async def test_resolve_by_code_is_case_insensitive(
        self,
        hierarchy: JurisdictionHierarchy,
        jurisdictions: dict[str, Jurisdiction],
    ) -> None:
        found = await hierarchy.resolve_by_code("us-ca-lac")
        assert found.id == jurisdictions["la_county"].id

    @pytest.mark.asyncio
    async def test_resolve_by_code_not_found(
        self,
        hierarchy: JurisdictionHierarchy,
        jurisdictions: dict[str, Jurisdiction],
    ) -> None:
        with pytest.raises(NotFoundError):
            await hierarchy.resolve_by_code("US-NV")

    @pytest.mark.asyncio
    async def test_find_by_state(
        self,
        hierarchy: JurisdictionHierarchy,
        jurisdictions: dict[str, Jurisdiction],
    ) -> None:
        """Direct children of the state, sorted by name."""
        children = await hierarchy.find_by_state("ca")
        assert [j.name for j in children] == ["Los Angeles County", "Orange County"]

    @pytest.mark.asyncio
    async def test_find_by_state_sanitizes_input(
        self,
        hierarchy: JurisdictionHierarchy,
        jurisdictions: dict[str, Jurisdiction],
    ) -> None:
        assert await hierarchy.find_by_state("^C.A$") != []
        assert await hierarchy.find_by_state(".*") == []

    @pytest.mark.asyncio
    async def test_find_by_address_city(
        self,
        hierarchy: JurisdictionHierarchy,
        jurisdictions: dict[str, Jurisdiction],
    ) -> None:
        found = await hierarchy.find_by_address("CA", county="Los Angeles", city="los angeles")
        assert found is not None
        assert found.id == jurisdictions["la_city"].id

    @pytest.mark.asyncio
    async def test_find_by_address_county_prefix(
        self,
        hierarchy: JurisdictionHierarchy,
        jurisdictions: dict[str, Jurisdiction],
    ) -> None:
        found = await hierarchy.find_by_address("CA", county="Orange")
        assert found is not None
        assert found.id == jurisdictions["orange"].id

    @pytest.mark.asyncio
    async def test_find_by_address_falls_back_to_state(
        self,
        hierarchy: JurisdictionHierarchy,
        jurisdictions: dict[str, Jurisdiction],
    ) -> None:
        found = await hierarchy.find_by_address("CA", county="Nowhere", city="Atlantis")
        assert found is not None
        assert found.id == jurisdictions["ca"].id

    @pytest.mark.asyncio
    async def test_find_by_address_unknown_state(
        self,
        hierarchy: JurisdictionHierarchy,
        jurisdictions: dict[str, Jurisdiction],
    ) -> None:
        assert await hierarchy.find_by_address("ZZ") is None

    @pytest.mark.asyncio
    async def test_list_jurisdictions_sorted_by_level(
        self,
        hierarchy: JurisdictionHierarchy,
        jurisdictions: dict[str, Jurisdiction],
    ) -> None:
        listed = await hierarchy.list_jurisdictions()
        assert [j.code for j in listed] == ["US", "US-CA", "US-CA-LAC", "US-CA-ORC", "US-CA-LA"]

    @pytest.mark.asyncio
    async def test_list_jurisdictions_by_coverage(
        self,
        hierarchy: JurisdictionHierarchy,
        jurisdictions: dict[str, Jurisdiction],
    ) -> None:
        listed = await hierarchy.list_jurisdictions(coverage_status=CoverageStatus.FULL)
        assert {j.code for j in listed} == {"US-CA", "US-CA-LA"}


class TestRegister:
    """Tests for jurisdiction registration."""

    @pytest.mark.asyncio
    async def test_register_builds_full_path(
        self,
        hierarchy: JurisdictionHierarchy,
        jurisdictions: dict[str, Jurisdiction],
    ) -> None:
        city = Jurisdiction(
            code="us-ca-pas",
            name="Pasadena",
            type=JurisdictionType.CITY,
            parent_id=jurisdictions["la_county"].id,
        )

        registered = await hierarchy.register(city)

        assert registered.code == "US-CA-PAS"
        assert registered.full_path == "United States > California > Los Angeles County > Pasadena"

    @pytest.mark.asyncio
    async def test_duplicate_code_rejected(
        self,
        hierarchy: JurisdictionHierarchy,
        jurisdictions: dict[str, Jurisdiction],
    ) -> None:
        duplicate = make_jurisdiction(
            "US-CA", "Other California", JurisdictionType.STATE, parent=jurisdictions["us"]
        )
        with pytest.raises(HierarchyError, match="already exists"):
            await hierarchy.register(duplicate)

    @pytest.mark.asyncio
    async def test_country_with_parent_rejected(
        self,
        hierarchy: JurisdictionHierarchy,
        jurisdictions: dict[str, Jurisdiction],
    ) -> None:
        country = make_jurisdiction(
            "MX", "Mexico", JurisdictionType.COUNTRY, parent=jurisdictions["us"]
        )
        with pytest.raises(HierarchyError):
            await hierarchy.register(country)

    @pytest.mark.asyncio
    async def test_parent_must_be_shallower(
        self,
        hierarchy: JurisdictionHierarchy,
        jurisdictions: dict[str, Jurisdiction],
    ) -> None:
        county = make_jurisdiction(
            "US-CA-BAD", "Bad County", JurisdictionType.COUNTY, parent=jurisdictions["la_city"]
        )
        with pytest.raises(HierarchyError, match="cannot be nested"):
            await hierarchy.register(county)

    @pytest.mark.asyncio
    async def test_missing_parent_rejected(self, hierarchy: JurisdictionHierarchy) -> None:
        city = Jurisdiction(
            code="US-NV-LV", name="Las Vegas", type=JurisdictionType.CITY, parent_id="nope"
        )
        with pytest.raises(HierarchyError, match="not found"):
            await hierarchy.register(city)
