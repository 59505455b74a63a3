"""
Verification Rules
==================

Matches a vendor's approved documents against applicable requirements.

Per requirement:
1. Requirement types without a document artifact are satisfied outright
2. No approved document of the expected type: missing
3. Latest approved document past its expiration date: expired
4. Expiring within the warning window: satisfied, with a warning note
5. File metadata and freshness checks: invalid on failure
6. Otherwise: satisfied

Evaluation is pure and synchronous; all I/O happens before it is called.

Version: 0.1.0
"""

from dataclasses import dataclass
from datetime import datetime

from shared.config import VerificationSettings
from shared.models import (
    ChecklistItem,
    ChecklistItemStatus,
    DocumentType,
    IssueSeverity,
    Requirement,
    RequirementType,
    ValidationIssue,
    Vendor,
    VendorDocument,
    VerificationChecklist,
    derive_checklist,
    utcnow,
)


# =============================================================================
# Requirement -> Document Mapping
# =============================================================================

# None marks requirement types that have no document to check
REQUIREMENT_DOCUMENT_TYPES: dict[RequirementType, DocumentType | None] = {
    RequirementType.LICENSE: DocumentType.BUSINESS_LICENSE,
    RequirementType.PERMIT: DocumentType.HEALTH_PERMIT,
    RequirementType.INSURANCE: DocumentType.INSURANCE_CERTIFICATE,
    RequirementType.CERTIFICATION: DocumentType.FOOD_HANDLER_CARD,
    RequirementType.INSPECTION: None,
    RequirementType.REGISTRATION: None,
}


def check_document_mapping(
    mapping: dict[RequirementType, DocumentType | None] = REQUIREMENT_DOCUMENT_TYPES,
) -> None:
    """Raise if any requirement type has no explicit mapping entry."""
    missing = [t.value for t in RequirementType if t not in mapping]
    if missing:
        raise RuntimeError(
            "Requirement types without a document mapping: " + ", ".join(sorted(missing))
        )


check_document_mapping()


def expected_document_type(requirement_type: RequirementType) -> DocumentType | None:
    return REQUIREMENT_DOCUMENT_TYPES[requirement_type]


# =============================================================================
# Notes
# =============================================================================

NOTE_NO_DOCUMENT_REQUIRED = "No document required for this requirement type"
NOTE_VALID = "Document approved and valid"
NOTE_FILE_MISSING = "Document file missing"
NOTE_FILE_EMPTY = "Document file is empty"
NOTE_INSURANCE_TOO_OLD = "Insurance certificate is too old (>1 year since issue)"


def _fmt_date(value: datetime) -> str:
    return value.date().isoformat()


@dataclass
class RuleThresholds:
    """Tunable limits used by the evaluator."""

    expiry_warning_days: int = 30
    insurance_max_age_days: int = 365

    @classmethod
    def from_settings(cls, settings: VerificationSettings) -> "RuleThresholds":
        return cls(
            expiry_warning_days=settings.expiry_warning_days,
            insurance_max_age_days=settings.insurance_max_age_days,
        )


# =============================================================================
# Evaluator
# =============================================================================


class RuleEvaluator:
    """Builds a verification checklist from documents and requirements."""

    def __init__(self, thresholds: RuleThresholds | None = None) -> None:
        self.thresholds = thresholds or RuleThresholds()

    def evaluate(
        self,
        vendor: Vendor,
        documents: list[VendorDocument],
        requirements: list[Requirement],
        now: datetime | None = None,
    ) -> VerificationChecklist:
        """
        Evaluate every requirement against the vendor's approved documents.

        Args:
            vendor: Vendor under evaluation
            documents: Vendor documents (non-approved ones are ignored)
            requirements: Applicable requirements, already ordered
            now: Evaluation time (defaults to now)

        Returns:
            Checklist with one item per requirement, in requirement order
        """
        now = now or utcnow()
        approved = [d for d in documents if d.is_approved and d.vendor_id == vendor.id]
        items = [self.evaluate_requirement(r, approved, now) for r in requirements]
        return derive_checklist(items)

    def evaluate_requirement(
        self,
        requirement: Requirement,
        approved_documents: list[VendorDocument],
        now: datetime,
    ) -> ChecklistItem:
        """Evaluate a single requirement."""
        item = ChecklistItem(
            requirement_id=requirement.id,
            requirement_name=requirement.name,
            requirement_type=requirement.requirement_type,
            status=ChecklistItemStatus.MISSING,
        )

        document_type = expected_document_type(requirement.requirement_type)
        if document_type is None:
            item.status = ChecklistItemStatus.SATISFIED
            item.notes = NOTE_NO_DOCUMENT_REQUIRED
            return item

        candidates = [d for d in approved_documents if d.type == document_type]
        if not candidates:
            item.notes = f"No approved {document_type.value} document found"
            return item

        document = max(candidates, key=lambda d: (d.created_at, d.id))
        item.associated_document_id = document.id

        if requirement.expiration_rules.has_expiration and document.expiration_date:
            if document.is_expired(now):
                item.status = ChecklistItemStatus.EXPIRED
                item.notes = f"Document expired on {_fmt_date(document.expiration_date)}"
                return item
            if document.is_expiring(self.thresholds.expiry_warning_days, now):
                item.status = ChecklistItemStatus.SATISFIED
                item.notes = f"Document expires soon on {_fmt_date(document.expiration_date)}"
                return item

        failure = self.validate_document(document, now)
        if failure:
            item.status = ChecklistItemStatus.INVALID
            item.notes = failure
            return item

        item.status = ChecklistItemStatus.SATISFIED
        item.notes = NOTE_VALID
        return item

    def validate_document(self, document: VendorDocument, now: datetime) -> str | None:
        """Return a failure note, or None when the document passes."""
        metadata = document.file_metadata
        if metadata is None or not metadata.storage_key:
            return NOTE_FILE_MISSING
        if metadata.size_bytes == 0:
            return NOTE_FILE_EMPTY

        if document.type == DocumentType.INSURANCE_CERTIFICATE and document.issue_date:
            days_since_issue = (now - document.issue_date).days
            if days_since_issue > self.thresholds.insurance_max_age_days:
                return NOTE_INSURANCE_TOO_OLD

        return None


def collect_expiry_notices(
    checklist: VerificationChecklist,
    documents: list[VendorDocument],
    notice_days: list[int],
    now: datetime | None = None,
) -> list[ValidationIssue]:
    """
    Warnings for satisfied items whose document expires within a notice window.

    Each document is reported once, against the smallest window it falls in.
    """
    now = now or utcnow()
    windows = sorted(notice_days)
    by_id = {d.id: d for d in documents}
    issues: list[ValidationIssue] = []

    for item in checklist.items:
        if item.status != ChecklistItemStatus.SATISFIED or not item.associated_document_id:
            continue
        document = by_id.get(item.associated_document_id)
        if document is None or document.expiration_date is None:
            continue
        window = next((w for w in windows if document.is_expiring(w, now)), None)
        if window is None:
            continue
        issues.append(
            ValidationIssue(
                field=f"documents.{document.id}.expiration_date",
                message=(
                    f"{item.requirement_name} document expires within {window} days "
                    f"(on {_fmt_date(document.expiration_date)})"
                ),
                severity=IssueSeverity.WARNING,
            )
        )
    return issues
