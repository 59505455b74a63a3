"""
Regulatory Update Models
========================

Log entries for detected regulatory changes.

Version: 0.1.0
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator

from shared.models.common import ensure_utc, new_id, utcnow


class UpdateType(str, Enum):
    """Types of regulatory changes."""

    NEW_REQUIREMENT = "new_requirement"
    REQUIREMENT_MODIFIED = "requirement_modified"
    REQUIREMENT_REMOVED = "requirement_removed"
    CONTACT_UPDATED = "contact_updated"

    @property
    def requires_reverification(self) -> bool:
        """Contact changes do not affect what vendors must hold."""
        return self != UpdateType.CONTACT_UPDATED


class UpdateSource(str, Enum):
    """Where a change was detected."""

    MANUAL = "manual"
    AUTOMATED_SCRAPER = "automated_scraper"
    OFFICIAL_API = "official_api"
    SIMULATED = "simulated"


class Urgency(str, Enum):
    IMMEDIATE = "immediate"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


CRITICAL_URGENCIES = frozenset({Urgency.IMMEDIATE, Urgency.HIGH})


class ImpactAssessment(BaseModel):
    affected_vendor_count: int = Field(default=0, ge=0)
    requires_reverification: bool = False
    urgency: Urgency = Urgency.MEDIUM


class RegUpdateLog(BaseModel):
    """Record of a detected regulatory change."""

    id: str = Field(default_factory=new_id)
    jurisdiction_id: str
    update_type: UpdateType
    affected_requirement_ids: list[str] = Field(default_factory=list)
    diff_summary: str = ""
    source: UpdateSource = UpdateSource.MANUAL
    impact_assessment: ImpactAssessment = Field(default_factory=ImpactAssessment)
    detected_at: datetime = Field(default_factory=utcnow)
    processed_at: datetime | None = None

    @field_validator("detected_at", "processed_at")
    @classmethod
    def normalize_datetimes(cls, v: datetime | None) -> datetime | None:
        return ensure_utc(v)

    @property
    def is_processed(self) -> bool:
        return self.processed_at is not None
