"""Tests for outcome resolution."""

import pytest

from services.verification.outcome import OutcomeResolver
from shared.models import (
    ChecklistItem,
    ChecklistItemStatus,
    Outcome,
    RequirementType,
    derive_checklist,
)


def item(status: ChecklistItemStatus, n: int = 0) -> ChecklistItem:
    return ChecklistItem(
        requirement_id=f"req-{status.value}-{n}",
        requirement_name=f"Requirement {n}",
        requirement_type=RequirementType.LICENSE,
        status=status,
    )


def items(**counts: int) -> list[ChecklistItem]:
    result = []
    for name, count in counts.items():
        status = ChecklistItemStatus(name)
        result.extend(item(status, n) for n in range(count))
    return result


@pytest.fixture
def resolver() -> OutcomeResolver:
    return OutcomeResolver()


class TestOutcomeResolver:
    """Tests for OutcomeResolver.resolve precedence."""

    def test_no_requirements(self, resolver: OutcomeResolver) -> None:
        decision = resolver.resolve(derive_checklist([]))
        assert decision.outcome == Outcome.VERIFIED
        assert decision.reason == "No requirements apply."

    def test_all_satisfied(self, resolver: OutcomeResolver) -> None:
        decision = resolver.resolve(derive_checklist(items(satisfied=3)))
        assert decision.outcome == Outcome.VERIFIED
        assert decision.reason == "All requirements satisfied"

    def test_expired_beats_everything(self, resolver: OutcomeResolver) -> None:
        """An expired item wins even alongside invalid and satisfied items."""
        checklist = derive_checklist(items(satisfied=8, invalid=1, expired=1))
        decision = resolver.resolve(checklist)
        assert decision.outcome == Outcome.EXPIRED
        assert decision.reason == "1 document(s) expired"

    def test_invalid_beats_completion(self, resolver: OutcomeResolver) -> None:
        decision = resolver.resolve(derive_checklist(items(satisfied=9, invalid=1)))
        assert decision.outcome == Outcome.NEEDS_REVIEW
        assert decision.reason == "1 document(s) failed validation"

    def test_rejected_below_threshold(self, resolver: OutcomeResolver) -> None:
        """3 of 4 (75%) is rejected."""
        decision = resolver.resolve(derive_checklist(items(satisfied=3, missing=1)))
        assert decision.outcome == Outcome.REJECTED
        assert decision.reason == "Incomplete submission: 1 document(s) missing (75% complete)"

    def test_needs_review_at_threshold(self, resolver: OutcomeResolver) -> None:
        """4 of 5 (80%) needs review."""
        decision = resolver.resolve(derive_checklist(items(satisfied=4, missing=1)))
        assert decision.outcome == Outcome.NEEDS_REVIEW
        assert decision.reason == "1 document(s) missing (80% complete)"

    def test_nothing_submitted(self, resolver: OutcomeResolver) -> None:
        decision = resolver.resolve(derive_checklist(items(missing=4)))
        assert decision.outcome == Outcome.REJECTED
        assert "4 document(s) missing (0% complete)" in decision.reason

    def test_rounded_hundred_is_verified(self, resolver: OutcomeResolver) -> None:
        """199 of 200 rounds to 100%, which resolves to verified."""
        checklist = derive_checklist(items(satisfied=199, missing=1))
        assert checklist.completion_percentage == 100

        decision = resolver.resolve(checklist)

        assert decision.outcome == Outcome.VERIFIED
        assert decision.reason == "All requirements satisfied"

    def test_just_below_rounding_needs_review(self, resolver: OutcomeResolver) -> None:
        """198 of 200 is 99%."""
        decision = resolver.resolve(derive_checklist(items(satisfied=198, missing=2)))
        assert decision.outcome == Outcome.NEEDS_REVIEW
        assert decision.reason == "2 document(s) missing (99% complete)"

    def test_custom_threshold(self) -> None:
        resolver = OutcomeResolver(needs_review_threshold=70)
        decision = resolver.resolve(derive_checklist(items(satisfied=3, missing=1)))
        assert decision.outcome == Outcome.NEEDS_REVIEW

    def test_threshold_bounds(self) -> None:
        with pytest.raises(ValueError):
            OutcomeResolver(needs_review_threshold=101)

    def test_order_does_not_matter(self, resolver: OutcomeResolver) -> None:
        forward = items(satisfied=2, missing=1, invalid=1)
        assert (
            resolver.resolve(derive_checklist(forward))
            == resolver.resolve(derive_checklist(list(reversed(forward))))
        )
