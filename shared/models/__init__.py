"""
Shared Models
=============

Pydantic models shared across the verification services.

Models:
- Jurisdiction models (Jurisdiction, JurisdictionType, CoverageStatus)
- Health department models (HealthDepartment, DepartmentContact)
- Requirement models (Requirement, Applicability, ExpirationRules)
- Vendor models (Vendor, Kitchen, VendorDocument, VendorPerson)
- Verification models (VerificationRun, VerificationChecklist, OutcomeEvent)
- Regulatory update models (RegUpdateLog, ImpactAssessment)
"""

from shared.models.common import ensure_utc, new_id, utcnow
from shared.models.health_department import (
    ApiAuthType,
    DepartmentApi,
    DepartmentContact,
    HealthDepartment,
)
from shared.models.jurisdiction import (
    CoverageStatus,
    Jurisdiction,
    JurisdictionMetadata,
    JurisdictionType,
)
from shared.models.regulatory_update import (
    CRITICAL_URGENCIES,
    ImpactAssessment,
    RegUpdateLog,
    UpdateSource,
    UpdateType,
    Urgency,
)
from shared.models.requirement import (
    Applicability,
    ExpirationRules,
    Frequency,
    Priority,
    Requirement,
    RequirementType,
    VerificationMethod,
)
from shared.models.vendor import (
    Address,
    DocumentStatus,
    DocumentType,
    FileMetadata,
    Kitchen,
    KitchenStatus,
    KitchenType,
    LegalEntityType,
    Vendor,
    VendorDocument,
    VendorPerson,
    VendorStatus,
    total_ownership,
)
from shared.models.verification import (
    ChecklistItem,
    ChecklistItemStatus,
    IssueSeverity,
    Outcome,
    OutcomeEvent,
    RunStatus,
    TriggerSource,
    ValidationIssue,
    VerificationChecklist,
    VerificationRun,
    completion_percentage,
    derive_checklist,
)

__all__ = [
    # Common
    "utcnow",
    "new_id",
    "ensure_utc",
    # Jurisdiction
    "Jurisdiction",
    "JurisdictionType",
    "JurisdictionMetadata",
    "CoverageStatus",
    # Health departments
    "HealthDepartment",
    "DepartmentContact",
    "DepartmentApi",
    "ApiAuthType",
    # Requirement
    "Requirement",
    "RequirementType",
    "Applicability",
    "ExpirationRules",
    "Frequency",
    "Priority",
    "VerificationMethod",
    # Vendor
    "Address",
    "Kitchen",
    "KitchenType",
    "KitchenStatus",
    "LegalEntityType",
    "Vendor",
    "VendorStatus",
    "VendorPerson",
    "VendorDocument",
    "DocumentType",
    "DocumentStatus",
    "FileMetadata",
    "total_ownership",
    # Verification
    "ChecklistItem",
    "ChecklistItemStatus",
    "VerificationChecklist",
    "VerificationRun",
    "RunStatus",
    "Outcome",
    "OutcomeEvent",
    "TriggerSource",
    "ValidationIssue",
    "IssueSeverity",
    "completion_percentage",
    "derive_checklist",
    # Regulatory updates
    "RegUpdateLog",
    "UpdateType",
    "UpdateSource",
    "Urgency",
    "ImpactAssessment",
    "CRITICAL_URGENCIES",
]
