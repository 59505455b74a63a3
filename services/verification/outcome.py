"""
Outcome Resolution
==================

Derives a single compliance outcome from a checklist.

Precedence (first match wins):
1. No requirements        -> verified
2. Any expired item       -> expired
3. Any invalid item       -> needs_review
4. 100% complete          -> verified
5. >= review threshold    -> needs_review
6. Otherwise              -> rejected

Version: 0.1.0
"""

from dataclasses import dataclass

from shared.models import ChecklistItemStatus, Outcome, VerificationChecklist


DEFAULT_NEEDS_REVIEW_THRESHOLD = 80

REASON_NO_REQUIREMENTS = "No requirements apply."
REASON_ALL_SATISFIED = "All requirements satisfied"


@dataclass(frozen=True)
class OutcomeDecision:
    """Resolved outcome and its human-readable reason."""

    outcome: Outcome
    reason: str


class OutcomeResolver:
    """Applies the outcome precedence rules."""

    def __init__(self, needs_review_threshold: int = DEFAULT_NEEDS_REVIEW_THRESHOLD) -> None:
        if not 0 <= needs_review_threshold <= 100:
            raise ValueError("needs_review_threshold must be between 0 and 100")
        self.needs_review_threshold = needs_review_threshold

    def resolve(self, checklist: VerificationChecklist) -> OutcomeDecision:
        """
        Resolve a checklist to an outcome.

        Only item counts are inspected, so the result does not depend on
        item order.
        """
        if checklist.total_items == 0:
            return OutcomeDecision(Outcome.VERIFIED, REASON_NO_REQUIREMENTS)

        expired = checklist.count(ChecklistItemStatus.EXPIRED)
        if expired:
            return OutcomeDecision(Outcome.EXPIRED, f"{expired} document(s) expired")

        invalid = checklist.count(ChecklistItemStatus.INVALID)
        if invalid:
            return OutcomeDecision(
                Outcome.NEEDS_REVIEW,
                f"{invalid} document(s) failed validation",
            )

        percentage = checklist.completion_percentage
        if percentage == 100:
            return OutcomeDecision(Outcome.VERIFIED, REASON_ALL_SATISFIED)

        missing = checklist.count(ChecklistItemStatus.MISSING)
        if percentage >= self.needs_review_threshold:
            return OutcomeDecision(
                Outcome.NEEDS_REVIEW,
                f"{missing} document(s) missing ({percentage}% complete)",
            )

        return OutcomeDecision(
            Outcome.REJECTED,
            f"Incomplete submission: {missing} document(s) missing ({percentage}% complete)",
        )
