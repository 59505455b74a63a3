"""
Verification Models
===================

Checklists, verification runs and the outcome event emitted when a run
completes.

Version: 0.1.0
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator, model_validator

from shared.errors import RunStateError
from shared.models.common import ensure_utc, new_id, utcnow
from shared.models.requirement import RequirementType


class TriggerSource(str, Enum):
    """What started a verification run."""

    MANUAL = "manual"
    SCHEDULED = "scheduled"
    WEBHOOK = "webhook"
    DOCUMENT_UPLOAD = "document_upload"
    REGULATION_UPDATE = "regulation_update"


class RunStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class Outcome(str, Enum):
    """Aggregate compliance verdict."""

    VERIFIED = "verified"
    NEEDS_REVIEW = "needs_review"
    REJECTED = "rejected"
    EXPIRED = "expired"

    @property
    def event_type(self) -> str:
        """Outbound event name for this outcome."""
        return f"vendor.{self.value}"


class ChecklistItemStatus(str, Enum):
    SATISFIED = "satisfied"
    MISSING = "missing"
    EXPIRED = "expired"
    INVALID = "invalid"


class IssueSeverity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class ChecklistItem(BaseModel):
    """Result of evaluating one requirement against a vendor's documents."""

    requirement_id: str
    requirement_name: str
    requirement_type: RequirementType
    status: ChecklistItemStatus
    associated_document_id: str | None = None
    notes: str = ""


def completion_percentage(satisfied: int, total: int) -> int:
    """round(100 * satisfied / total) with halves rounded up; 0 when empty."""
    if total <= 0:
        return 0
    return (200 * satisfied + total) // (2 * total)


class VerificationChecklist(BaseModel):
    """
    Ordered checklist items plus derived counters.

    Build instances with `derive_checklist`; the validator rejects counters
    that disagree with the items.
    """

    items: list[ChecklistItem] = Field(default_factory=list)
    total_items: int = 0
    satisfied_items: int = 0
    completion_percentage: int = 0

    @model_validator(mode="after")
    def check_counters(self) -> "VerificationChecklist":
        satisfied = sum(1 for i in self.items if i.status == ChecklistItemStatus.SATISFIED)
        expected = (
            len(self.items),
            satisfied,
            completion_percentage(satisfied, len(self.items)),
        )
        actual = (self.total_items, self.satisfied_items, self.completion_percentage)
        if actual != expected:
            raise ValueError(
                f"Checklist counters {actual} do not match items (expected {expected})"
            )
        return self

    def count(self, status: ChecklistItemStatus) -> int:
        return sum(1 for item in self.items if item.status == status)


def derive_checklist(items: list[ChecklistItem]) -> VerificationChecklist:
    """Build a checklist, computing its counters from the items."""
    items = list(items)
    satisfied = sum(1 for i in items if i.status == ChecklistItemStatus.SATISFIED)
    return VerificationChecklist(
        items=items,
        total_items=len(items),
        satisfied_items=satisfied,
        completion_percentage=completion_percentage(satisfied, len(items)),
    )


class ValidationIssue(BaseModel):
    """A problem found while verifying, shown alongside the checklist."""

    field: str
    message: str
    severity: IssueSeverity = IssueSeverity.ERROR


class VerificationRun(BaseModel):
    """
    One evaluation of a vendor.

    Starts RUNNING and moves exactly once to COMPLETED (with an outcome)
    or FAILED (with an error message).
    """

    id: str = Field(default_factory=new_id)
    vendor_id: str
    tenant_id: str
    triggered_by: TriggerSource
    triggered_by_user_id: str | None = None

    status: RunStatus = RunStatus.RUNNING
    checklist: VerificationChecklist = Field(default_factory=VerificationChecklist)
    outcome: Outcome | None = None
    outcome_reason: str | None = None
    validation_errors: list[ValidationIssue] = Field(default_factory=list)

    started_at: datetime = Field(default_factory=utcnow)
    completed_at: datetime | None = None
    created_at: datetime = Field(default_factory=utcnow)

    @field_validator("started_at", "completed_at", "created_at")
    @classmethod
    def normalize_datetimes(cls, v: datetime | None) -> datetime | None:
        return ensure_utc(v)

    @property
    def is_terminal(self) -> bool:
        return self.status != RunStatus.RUNNING

    def _require_running(self) -> None:
        if self.is_terminal:
            raise RunStateError(self.id, self.status.value)

    def complete(
        self,
        checklist: VerificationChecklist,
        outcome: Outcome,
        reason: str,
        now: datetime | None = None,
    ) -> None:
        """Record a successful evaluation."""
        self._require_running()
        self.checklist = checklist
        self.outcome = outcome
        self.outcome_reason = reason
        self.status = RunStatus.COMPLETED
        self.completed_at = now or utcnow()

    def fail(self, message: str, now: datetime | None = None) -> None:
        """Record a failed evaluation. The message is stored as-is."""
        self._require_running()
        self.status = RunStatus.FAILED
        self.outcome_reason = message or "Verification failed"
        self.completed_at = now or utcnow()


class OutcomeEvent(BaseModel):
    """Emitted for the notification subsystem when a run completes."""

    event_type: str
    tenant_id: str
    vendor_id: str
    verification_run_id: str
    outcome: Outcome
    completion_percentage: int
    outcome_reason: str
    occurred_at: datetime = Field(default_factory=utcnow)

    @classmethod
    def from_run(cls, run: VerificationRun) -> "OutcomeEvent":
        if run.status != RunStatus.COMPLETED or run.outcome is None:
            raise RunStateError(run.id, run.status.value)
        return cls(
            event_type=run.outcome.event_type,
            tenant_id=run.tenant_id,
            vendor_id=run.vendor_id,
            verification_run_id=run.id,
            outcome=run.outcome,
            completion_percentage=run.checklist.completion_percentage,
            outcome_reason=run.outcome_reason or "",
            occurred_at=run.completed_at or utcnow(),
        )
