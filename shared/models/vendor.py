"""
Vendor Models
=============

Vendors, kitchens and vendor documents. These records are owned by the
vendor management side of the platform; the verification engine reads them
and writes back only the vendor's verification status fields.

Version: 0.1.0
"""

from datetime import datetime, timedelta
from enum import Enum

from pydantic import BaseModel, Field, field_validator, model_validator

from shared.models.common import ensure_utc, new_id, utcnow


MAX_TOTAL_OWNERSHIP = 100.0


class KitchenType(str, Enum):
    """Commercial kitchen operating models."""

    SHARED = "shared"
    GHOST = "ghost"
    COMMISSARY = "commissary"


class KitchenStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class LegalEntityType(str, Enum):
    """Legal structure of a vendor business."""

    SOLE_PROPRIETORSHIP = "sole_proprietorship"
    LLC = "llc"
    CORPORATION = "corporation"
    PARTNERSHIP = "partnership"


class VendorStatus(str, Enum):
    """Compliance status of a vendor."""

    PENDING = "pending"
    VERIFIED = "verified"
    NEEDS_REVIEW = "needs_review"
    REJECTED = "rejected"
    EXPIRED = "expired"
    SUSPENDED = "suspended"


class DocumentType(str, Enum):
    """Kinds of documents a vendor can upload."""

    BUSINESS_LICENSE = "business_license"
    HEALTH_PERMIT = "health_permit"
    FOOD_HANDLER_CARD = "food_handler_card"
    INSURANCE_CERTIFICATE = "insurance_certificate"
    W9 = "w9"
    EIN_LETTER = "ein_letter"
    LEASE_AGREEMENT = "lease_agreement"
    OTHER = "other"


class DocumentStatus(str, Enum):
    """Review status of an uploaded document."""

    PENDING_REVIEW = "pending_review"
    APPROVED = "approved"
    REJECTED = "rejected"


class Address(BaseModel):
    street: str | None = None
    city: str | None = None
    county: str | None = None
    state: str | None = None
    postal_code: str | None = None


class Kitchen(BaseModel):
    """A commercial kitchen hosting vendors."""

    id: str = Field(default_factory=new_id)
    tenant_id: str
    jurisdiction_id: str | None = None
    name: str
    type: KitchenType = KitchenType.SHARED
    status: KitchenStatus = KitchenStatus.ACTIVE
    address: Address = Field(default_factory=Address)


class VendorPerson(BaseModel):
    """An owner or officer of a vendor business."""

    id: str = Field(default_factory=new_id)
    full_name: str
    role: str = "owner"
    ownership_percentage: float = Field(default=0.0, ge=0.0, le=100.0)


def total_ownership(persons: list[VendorPerson]) -> float:
    """Sum of ownership percentages across a vendor's persons."""
    return sum(p.ownership_percentage for p in persons)


class Vendor(BaseModel):
    """
    A food business operating out of a kitchen.

    The person list is validated as a whole: ownership percentages across
    all persons may not exceed 100.
    """

    id: str = Field(default_factory=new_id)
    tenant_id: str
    kitchen_id: str | None = None
    business_name: str
    legal_entity_type: LegalEntityType = LegalEntityType.LLC
    status: VendorStatus = VendorStatus.PENDING

    # Verification pointers
    last_verified_at: datetime | None = None
    verification_status_updated_at: datetime | None = None
    current_verification_run_id: str | None = None

    persons: list[VendorPerson] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)

    @field_validator("last_verified_at", "verification_status_updated_at", "created_at")
    @classmethod
    def normalize_datetimes(cls, v: datetime | None) -> datetime | None:
        return ensure_utc(v)

    @model_validator(mode="after")
    def check_total_ownership(self) -> "Vendor":
        if total_ownership(self.persons) > MAX_TOTAL_OWNERSHIP:
            raise ValueError("Total ownership percentage cannot exceed 100%")
        return self


class FileMetadata(BaseModel):
    """Storage details of an uploaded file."""

    storage_key: str | None = None
    filename: str | None = None
    mimetype: str | None = None
    size_bytes: int | None = Field(default=None, ge=0)
    uploaded_at: datetime | None = None


class VendorDocument(BaseModel):
    """A document uploaded by a vendor."""

    id: str = Field(default_factory=new_id)
    vendor_id: str
    type: DocumentType
    status: DocumentStatus = DocumentStatus.PENDING_REVIEW
    issue_date: datetime | None = None
    expiration_date: datetime | None = None
    file_metadata: FileMetadata | None = None
    created_at: datetime = Field(default_factory=utcnow)

    @field_validator("issue_date", "expiration_date", "created_at")
    @classmethod
    def normalize_datetimes(cls, v: datetime | None) -> datetime | None:
        return ensure_utc(v)

    @property
    def is_approved(self) -> bool:
        return self.status == DocumentStatus.APPROVED

    def is_expired(self, now: datetime | None = None) -> bool:
        """Expiration date has passed."""
        if self.expiration_date is None:
            return False
        return self.expiration_date < (now or utcnow())

    def is_expiring(self, days: int, now: datetime | None = None) -> bool:
        """Not yet expired, but expires within `days`."""
        if self.expiration_date is None:
            return False
        remaining = self.expiration_date - (now or utcnow())
        return timedelta(0) < remaining <= timedelta(days=days)
