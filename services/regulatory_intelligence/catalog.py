"""
Requirement Catalog
===================

Versioned, time-bounded requirements per jurisdiction.

Applicability:
- A requirement applies while `now` is in [effective_from, effective_to)
- Empty kitchen-type or entity-type lists apply to everyone
- Results are ordered by priority (critical first), then requirement type

Versions of the same logical rule may coexist only when their active
windows do not overlap; superseded versions are closed, never deleted.

Version: 0.1.0
"""

from datetime import datetime

from shared.errors import CatalogConflictError, NotFoundError, ValidationError
from shared.logging import get_logger
from shared.models import (
    KitchenType,
    LegalEntityType,
    Requirement,
    utcnow,
)
from shared.repository import ComplianceRepository


logger = get_logger(__name__)


# =============================================================================
# Pure Helpers
# =============================================================================


def is_active(requirement: Requirement, at: datetime) -> bool:
    """Requirement's active window contains `at`."""
    return requirement.is_active(at)


def applies_to(
    requirement: Requirement,
    kitchen_type: KitchenType | None,
    entity_type: LegalEntityType | None,
) -> bool:
    """Applicability check; empty sets mean "applies to all"."""
    kitchen_types = requirement.applies_to.kitchen_types
    if kitchen_types and kitchen_type not in kitchen_types:
        return False
    entity_types = requirement.applies_to.business_entity_types
    if entity_types and entity_type not in entity_types:
        return False
    return True


def sort_key(requirement: Requirement) -> tuple[int, str]:
    return requirement.priority.rank, requirement.requirement_type.value


def filter_applicable(
    requirements: list[Requirement],
    jurisdiction_id: str,
    kitchen_type: KitchenType | None,
    entity_type: LegalEntityType | None,
    at: datetime,
) -> list[Requirement]:
    """Filter and order requirements for one vendor profile."""
    matching = [
        r
        for r in requirements
        if r.jurisdiction_id == jurisdiction_id
        and is_active(r, at)
        and applies_to(r, kitchen_type, entity_type)
    ]
    # sorted() is stable, so equal keys keep their input order
    return sorted(matching, key=sort_key)


def windows_overlap(a: Requirement, b: Requirement) -> bool:
    """Half-open [from, to) windows intersect."""
    for r in (a, b):
        if r.effective_to is not None and r.effective_to == r.effective_from:
            return False
    a_ends_after_b_starts = a.effective_to is None or a.effective_to > b.effective_from
    b_ends_after_a_starts = b.effective_to is None or b.effective_to > a.effective_from
    return a_ends_after_b_starts and b_ends_after_a_starts


# =============================================================================
# Catalog Service
# =============================================================================


class RequirementCatalog:
    """Query and maintain regulatory requirements."""

    def __init__(self, repository: ComplianceRepository) -> None:
        self.repository = repository

    async def find_applicable(
        self,
        jurisdiction_id: str,
        kitchen_type: KitchenType | None,
        entity_type: LegalEntityType | None,
        at: datetime | None = None,
    ) -> list[Requirement]:
        """
        Requirements a vendor in this jurisdiction must satisfy.

        Args:
            jurisdiction_id: Jurisdiction of the vendor's kitchen
            kitchen_type: Vendor's kitchen type
            entity_type: Vendor's legal entity type
            at: Evaluation time (defaults to now)

        Returns:
            Active, applicable requirements ordered by priority then type
        """
        requirements = await self.repository.list_requirements(jurisdiction_id)
        return filter_applicable(
            requirements,
            jurisdiction_id,
            kitchen_type,
            entity_type,
            at or utcnow(),
        )

    async def list_for_jurisdiction(
        self,
        jurisdiction_id: str,
        active_only: bool = True,
        at: datetime | None = None,
    ) -> list[Requirement]:
        """All requirements of a jurisdiction, ordered by priority."""
        requirements = await self.repository.list_requirements(jurisdiction_id)
        if active_only:
            at = at or utcnow()
            requirements = [r for r in requirements if is_active(r, at)]
        return sorted(requirements, key=lambda r: (*sort_key(r), r.effective_from))

    async def get(self, requirement_id: str) -> Requirement:
        requirement = await self.repository.get_requirement(requirement_id)
        if requirement is None:
            raise NotFoundError("Requirement", requirement_id)
        return requirement

    async def add(self, requirement: Requirement) -> Requirement:
        """
        Insert a new requirement version.

        Raises:
            CatalogConflictError: another version of the same rule is active
                during an overlapping window
        """
        await self._check_no_overlap(requirement)
        await self.repository.save_requirement(requirement)
        logger.info(
            "requirement_added",
            requirement_id=requirement.id,
            jurisdiction_id=requirement.jurisdiction_id,
            requirement_type=requirement.requirement_type.value,
            version=requirement.version,
        )
        return requirement

    async def update(self, requirement: Requirement) -> Requirement:
        """Replace an existing requirement version after re-validating its window."""
        await self.get(requirement.id)
        await self._check_no_overlap(requirement)
        await self.repository.save_requirement(requirement)
        logger.info(
            "requirement_updated",
            requirement_id=requirement.id,
            version=requirement.version,
        )
        return requirement

    async def supersede(self, requirement_id: str, replacement: Requirement) -> Requirement:
        """
        Close the current version and store its replacement.

        The current version's window ends where the replacement's begins,
        unless it already closed earlier.
        The replacement must carry a strictly higher version and describe
        the same logical rule.
        """
        current = await self.get(requirement_id)

        if replacement.rule_key != current.rule_key:
            raise ValidationError(
                "Replacement must have the same jurisdiction, type and name",
                field="rule_key",
            )
        if replacement.version_tuple <= current.version_tuple:
            raise ValidationError(
                f"Replacement version {replacement.version} must be greater than "
                f"{current.version}",
                field="version",
            )
        if replacement.effective_from < current.effective_from:
            raise ValidationError(
                "Replacement cannot take effect before the version it supersedes",
                field="effective_from",
            )

        effective_to = replacement.effective_from
        if current.effective_to is not None:
            effective_to = min(current.effective_to, effective_to)
        closed = current.model_copy(update={"effective_to": effective_to})
        await self._check_no_overlap(replacement, ignore_ids={current.id})
        await self.repository.save_requirement(closed)
        await self.repository.save_requirement(replacement)

        logger.info(
            "requirement_superseded",
            requirement_id=current.id,
            replacement_id=replacement.id,
            old_version=current.version,
            new_version=replacement.version,
        )
        return replacement

    async def _check_no_overlap(
        self,
        requirement: Requirement,
        ignore_ids: set[str] | None = None,
    ) -> None:
        ignore = {requirement.id} | (ignore_ids or set())
        siblings = await self.repository.list_requirements(requirement.jurisdiction_id)
        for other in siblings:
            if other.id in ignore or other.rule_key != requirement.rule_key:
                continue
            if windows_overlap(requirement, other):
                raise CatalogConflictError(
                    f"Version {requirement.version} of '{requirement.name}' overlaps "
                    f"active window of version {other.version}",
                    conflicting_id=other.id,
                )
