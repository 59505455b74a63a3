"""
Requirement Models
==================

Versioned, time-bounded regulatory requirements scoped to a jurisdiction.

Version: 0.1.0
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator, model_validator

from shared.models.common import ensure_utc, new_id, utcnow
from shared.models.vendor import KitchenType, LegalEntityType


SEMVER_PATTERN = r"^\d+\.\d+\.\d+$"


class RequirementType(str, Enum):
    """Kinds of regulatory obligations."""

    LICENSE = "license"
    PERMIT = "permit"
    INSPECTION = "inspection"
    INSURANCE = "insurance"
    CERTIFICATION = "certification"
    REGISTRATION = "registration"


class Frequency(str, Enum):
    """How often a requirement must be renewed."""

    ONCE = "once"
    ANNUAL = "annual"
    BIENNIAL = "biennial"
    QUARTERLY = "quarterly"


class Priority(str, Enum):
    """Requirement priority."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Sort rank (critical first)."""
        return _PRIORITY_RANKS[self]


_PRIORITY_RANKS = {
    Priority.CRITICAL: 1,
    Priority.HIGH: 2,
    Priority.MEDIUM: 3,
    Priority.LOW: 4,
}


class VerificationMethod(str, Enum):
    """How a requirement is checked."""

    DOCUMENT_UPLOAD = "document_upload"
    API_CHECK = "api_check"
    MANUAL_REVIEW = "manual_review"


class Applicability(BaseModel):
    """
    Who a requirement applies to.

    An empty list means the requirement applies to every value of that
    dimension.
    """

    kitchen_types: list[KitchenType] = Field(default_factory=list)
    vendor_types: list[str] = Field(default_factory=list)
    business_entity_types: list[LegalEntityType] = Field(default_factory=list)


class ExpirationRules(BaseModel):
    """Document expiration policy for a requirement."""

    has_expiration: bool = True
    validity_period_days: int | None = Field(default=365, ge=1)
    renewal_window_days: int = Field(default=30, ge=0)


class Requirement(BaseModel):
    """A single regulatory obligation."""

    id: str = Field(default_factory=new_id)
    jurisdiction_id: str
    requirement_type: RequirementType
    name: str = Field(..., min_length=1)
    description: str = ""

    applies_to: Applicability = Field(default_factory=Applicability)
    frequency: Frequency = Frequency.ANNUAL
    expiration_rules: ExpirationRules = Field(default_factory=ExpirationRules)
    verification_method: VerificationMethod = VerificationMethod.DOCUMENT_UPLOAD
    priority: Priority = Priority.MEDIUM

    # Versioning
    version: str = Field(default="1.0.0", pattern=SEMVER_PATTERN)
    effective_from: datetime = Field(default_factory=utcnow)
    effective_to: datetime | None = None

    source_url: str | None = None
    created_at: datetime = Field(default_factory=utcnow)

    @field_validator("effective_from", "effective_to", "created_at")
    @classmethod
    def normalize_datetimes(cls, v: datetime | None) -> datetime | None:
        return ensure_utc(v)

    @model_validator(mode="after")
    def check_effective_window(self) -> "Requirement":
        if self.effective_to is not None and self.effective_from > self.effective_to:
            raise ValueError("effective_from must not be after effective_to")
        return self

    @property
    def rule_key(self) -> tuple[str, str, str]:
        """Identity shared by all versions of the same logical rule."""
        return (
            self.jurisdiction_id,
            self.requirement_type.value,
            self.name.strip().lower(),
        )

    @property
    def version_tuple(self) -> tuple[int, int, int]:
        major, minor, patch = (int(part) for part in self.version.split("."))
        return major, minor, patch

    def is_active(self, at: datetime | None = None) -> bool:
        """Active iff `at` falls in [effective_from, effective_to)."""
        at = at or utcnow()
        if self.effective_from > at:
            return False
        return self.effective_to is None or self.effective_to > at
