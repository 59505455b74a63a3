"""
Jurisdiction Hierarchy
======================

Resolves jurisdictions by code, address and state, and walks parent
chains from a jurisdiction up to its country.

Version: 0.1.0
"""

import re

from shared.errors import DataIntegrityError, HierarchyError, NotFoundError
from shared.logging import get_logger
from shared.models import CoverageStatus, Jurisdiction, JurisdictionType
from shared.repository import ComplianceRepository


logger = get_logger(__name__)

# Longest state/province token accepted by find_by_state
MAX_STATE_TOKEN_LENGTH = 3

_NON_ALPHA = re.compile(r"[^A-Z]")


def sanitize_state_code(state_code: str) -> str:
    """Reduce user input to a short uppercase A-Z token."""
    return _NON_ALPHA.sub("", (state_code or "").upper())[:MAX_STATE_TOKEN_LENGTH]


class JurisdictionHierarchy:
    """
    Read and register jurisdictions.

    Read paths are safe to share across concurrent evaluations.
    """

    def __init__(self, repository: ComplianceRepository) -> None:
        self.repository = repository

    async def get(self, jurisdiction_id: str) -> Jurisdiction:
        """Get a jurisdiction by id or raise NotFoundError."""
        jurisdiction = await self.repository.get_jurisdiction(jurisdiction_id)
        if jurisdiction is None:
            raise NotFoundError("Jurisdiction", jurisdiction_id)
        return jurisdiction

    async def resolve_by_code(self, code: str) -> Jurisdiction:
        """Get a jurisdiction by code (case-insensitive) or raise NotFoundError."""
        normalized = (code or "").strip().upper()
        jurisdiction = await self.repository.get_jurisdiction_by_code(normalized)
        if jurisdiction is None:
            raise NotFoundError("Jurisdiction", normalized)
        return jurisdiction

    async def build_ancestor_chain(self, jurisdiction_id: str) -> list[Jurisdiction]:
        """
        Walk parent references up to the root.

        Returns:
            Jurisdictions ordered root (country) first, queried node last.

        Raises:
            NotFoundError: the starting jurisdiction does not exist
            DataIntegrityError: a cycle, a dangling parent, or a root that
                is not a country
        """
        current = await self.get(jurisdiction_id)
        chain: list[Jurisdiction] = []
        seen: set[str] = set()

        while True:
            if current.id in seen:
                logger.error(
                    "jurisdiction_cycle_detected",
                    jurisdiction_id=jurisdiction_id,
                    repeated_id=current.id,
                )
                raise DataIntegrityError(
                    f"Jurisdiction hierarchy contains a cycle at {current.code}",
                    details={"jurisdiction_id": jurisdiction_id, "repeated_id": current.id},
                )
            seen.add(current.id)
            chain.insert(0, current)

            if current.parent_id is None:
                break
            parent = await self.repository.get_jurisdiction(current.parent_id)
            if parent is None:
                raise DataIntegrityError(
                    f"Jurisdiction {current.code} references missing parent {current.parent_id}",
                    details={"jurisdiction_id": current.id, "parent_id": current.parent_id},
                )
            current = parent

        root = chain[0]
        if root.type != JurisdictionType.COUNTRY:
            raise DataIntegrityError(
                f"Jurisdiction hierarchy for {chain[-1].code} ends at {root.type.value} "
                f"{root.code}, not a country",
                details={"jurisdiction_id": jurisdiction_id, "root_id": root.id},
            )
        return chain

    async def find_by_state(self, state_code: str, country_code: str = "US") -> list[Jurisdiction]:
        """
        Direct children of a state, sorted by name.

        The state code is sanitized before use; anything that does not
        reduce to letters returns an empty list.
        """
        token = sanitize_state_code(state_code)
        if not token:
            return []
        state = await self.repository.get_jurisdiction_by_code(f"{country_code.upper()}-{token}")
        if state is None:
            return []
        children = await self.repository.list_child_jurisdictions(state.id)
        return sorted(children, key=lambda j: j.name)

    async def find_by_address(
        self,
        state: str,
        county: str | None = None,
        city: str | None = None,
        country_code: str = "US",
    ) -> Jurisdiction | None:
        """
        Most specific jurisdiction for an address.

        City matches are exact (case-insensitive); county matches are by
        prefix so "Los Angeles" finds "Los Angeles County". Falls back to
        the state itself.
        """
        token = sanitize_state_code(state)
        if not token:
            return None
        state_node = await self.repository.get_jurisdiction_by_code(
            f"{country_code.upper()}-{token}"
        )
        if state_node is None:
            return None

        descendants = await self._descendants(state_node.id)

        if city:
            wanted = city.strip().lower()
            for node in descendants:
                if node.type == JurisdictionType.CITY and node.name.lower() == wanted:
                    return node

        if county:
            prefix = county.strip().lower()
            for node in sorted(descendants, key=lambda j: j.name):
                if node.type == JurisdictionType.COUNTY and node.name.lower().startswith(prefix):
                    return node

        return state_node

    async def _descendants(self, root_id: str) -> list[Jurisdiction]:
        found: list[Jurisdiction] = []
        seen = {root_id}
        frontier = [root_id]
        while frontier:
            parent_id = frontier.pop()
            for child in await self.repository.list_child_jurisdictions(parent_id):
                if child.id in seen:
                    continue
                seen.add(child.id)
                found.append(child)
                frontier.append(child.id)
        return found

    async def list_jurisdictions(
        self,
        jurisdiction_type: JurisdictionType | None = None,
        coverage_status: CoverageStatus | None = None,
    ) -> list[Jurisdiction]:
        """List jurisdictions sorted by hierarchy level, then name."""
        jurisdictions = await self.repository.list_jurisdictions(
            jurisdiction_type=jurisdiction_type,
            coverage_statuses={coverage_status} if coverage_status else None,
        )
        return sorted(jurisdictions, key=lambda j: (j.type.level, j.name))

    async def register(self, jurisdiction: Jurisdiction) -> Jurisdiction:
        """
        Store a new jurisdiction after checking hierarchy rules.

        Raises:
            HierarchyError: duplicate code, a parented country, a missing
                parent, or a parent that is not shallower
        """
        existing = await self.repository.get_jurisdiction_by_code(jurisdiction.code)
        if existing is not None and existing.id != jurisdiction.id:
            raise HierarchyError(f"Jurisdiction code {jurisdiction.code} already exists")

        if jurisdiction.type == JurisdictionType.COUNTRY:
            if jurisdiction.parent_id is not None:
                raise HierarchyError("A country jurisdiction cannot have a parent")
        else:
            if jurisdiction.parent_id is None:
                raise HierarchyError(
                    f"A {jurisdiction.type.value} jurisdiction requires a parent"
                )
            parent = await self.repository.get_jurisdiction(jurisdiction.parent_id)
            if parent is None:
                raise HierarchyError(f"Parent jurisdiction {jurisdiction.parent_id} not found")
            if parent.type.level >= jurisdiction.type.level:
                raise HierarchyError(
                    f"A {jurisdiction.type.value} cannot be nested under a {parent.type.value}"
                )
            if jurisdiction.full_path is None and parent.full_path:
                jurisdiction.full_path = f"{parent.full_path} > {jurisdiction.name}"

        if jurisdiction.full_path is None:
            jurisdiction.full_path = jurisdiction.name

        await self.repository.save_jurisdiction(jurisdiction)
        logger.info(
            "jurisdiction_registered",
            jurisdiction_id=jurisdiction.id,
            code=jurisdiction.code,
            type=jurisdiction.type.value,
        )
        return jurisdiction
