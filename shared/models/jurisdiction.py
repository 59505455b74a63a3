"""
Jurisdiction Models
===================

Geographic regulatory scopes (country > state > county > city).

Version: 0.1.0
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator

from shared.models.common import ensure_utc, new_id, utcnow


class JurisdictionType(str, Enum):
    """Levels of the jurisdiction hierarchy."""

    COUNTRY = "country"
    STATE = "state"
    COUNTY = "county"
    CITY = "city"

    @property
    def level(self) -> int:
        """Depth in the hierarchy (country = 0)."""
        return _JURISDICTION_LEVELS[self]


_JURISDICTION_LEVELS = {
    JurisdictionType.COUNTRY: 0,
    JurisdictionType.STATE: 1,
    JurisdictionType.COUNTY: 2,
    JurisdictionType.CITY: 3,
}


class CoverageStatus(str, Enum):
    """How completely a jurisdiction's requirements are catalogued."""

    FULL = "full"
    PARTIAL = "partial"
    NONE = "none"


class JurisdictionMetadata(BaseModel):
    """Descriptive attributes of a jurisdiction."""

    population: int | None = Field(default=None, ge=0)
    timezone: str = "America/Los_Angeles"
    regulatory_complexity_score: int = Field(default=5, ge=1, le=10)
    coverage_status: CoverageStatus = CoverageStatus.NONE


class Jurisdiction(BaseModel):
    """A geographic regulatory scope."""

    id: str = Field(default_factory=new_id)
    code: str = Field(..., min_length=1, description="Hierarchical code (e.g., US-CA-LAC)")
    name: str = Field(..., min_length=1)
    type: JurisdictionType
    parent_id: str | None = None
    full_path: str | None = Field(
        default=None,
        description="Display path (e.g., United States > California > Los Angeles County)",
    )
    metadata: JurisdictionMetadata = Field(default_factory=JurisdictionMetadata)
    created_at: datetime = Field(default_factory=utcnow)

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        """Codes are stored uppercase."""
        return v.strip().upper()

    @field_validator("created_at")
    @classmethod
    def normalize_created_at(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @property
    def coverage_status(self) -> CoverageStatus:
        return self.metadata.coverage_status
