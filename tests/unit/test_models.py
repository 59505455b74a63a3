"""
Unit tests for domain models.
"""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from shared.errors import RunStateError
from shared.models import (
    ApiAuthType,
    ChecklistItem,
    ChecklistItemStatus,
    DepartmentApi,
    DepartmentContact,
    JurisdictionType,
    Outcome,
    OutcomeEvent,
    RequirementType,
    RunStatus,
    TriggerSource,
    VendorPerson,
    VerificationChecklist,
    VerificationRun,
    derive_checklist,
    utcnow,
)
from tests.factories import (
    make_document,
    make_health_department,
    make_jurisdiction,
    make_requirement,
    make_vendor,
)


def satisfied_item(n: int) -> ChecklistItem:
    return ChecklistItem(
        requirement_id=f"req-{n}",
        requirement_name="Business License",
        requirement_type=RequirementType.LICENSE,
        status=ChecklistItemStatus.SATISFIED,
    )


class TestJurisdiction:
    """Tests for the Jurisdiction model."""

    def test_code_is_uppercased(self) -> None:
        jurisdiction = make_jurisdiction(" us-ca-lac ", "Los Angeles County", JurisdictionType.COUNTY)
        assert jurisdiction.code == "US-CA-LAC"

    def test_type_levels_are_ordered(self) -> None:
        levels = [
            JurisdictionType.COUNTRY.level,
            JurisdictionType.STATE.level,
            JurisdictionType.COUNTY.level,
            JurisdictionType.CITY.level,
        ]
        assert levels == sorted(levels)


class TestRequirement:
    """Tests for the Requirement model."""

    def test_active_window_is_half_open(self) -> None:
        start = utcnow() - timedelta(days=10)
        end = utcnow() + timedelta(days=10)
        requirement = make_requirement("j1", effective_from=start, effective_to=end)

        assert requirement.is_active(start)
        assert not requirement.is_active(end)
        assert not requirement.is_active(start - timedelta(seconds=1))

    def test_inverted_window_rejected(self) -> None:
        with pytest.raises(ValidationError):
            make_requirement(
                "j1",
                effective_from=utcnow(),
                effective_to=utcnow() - timedelta(days=1),
            )

    def test_invalid_version_rejected(self) -> None:
        with pytest.raises(ValidationError):
            make_requirement("j1", version="v2")


class TestVendor:
    """Tests for the Vendor model."""

    def test_ownership_up_to_hundred(self) -> None:
        vendor = make_vendor(
            "k1",
            persons=[
                VendorPerson(full_name="Ana Ruiz", ownership_percentage=60),
                VendorPerson(full_name="Sam Ortiz", ownership_percentage=40),
            ],
        )
        assert len(vendor.persons) == 2

    def test_ownership_over_hundred_rejected(self) -> None:
        with pytest.raises(ValidationError, match="cannot exceed 100%"):
            make_vendor(
                "k1",
                persons=[
                    VendorPerson(full_name="Ana Ruiz", ownership_percentage=60),
                    VendorPerson(full_name="Sam Ortiz", ownership_percentage=41),
                ],
            )


class TestVendorDocument:
    """Tests for document expiry helpers."""

    def test_expired_and_expiring(self) -> None:
        now = utcnow()
        expired = make_document("v1", expires_in_days=-1)
        expiring = make_document("v1", expires_in_days=20)
        open_ended = make_document("v1", expires_in_days=None)

        assert expired.is_expired(now)
        assert not expiring.is_expired(now)
        assert expiring.is_expiring(30, now)
        assert not expiring.is_expiring(10, now)
        assert not open_ended.is_expired(now)


class TestVerificationChecklist:
    """Tests for checklist counters."""

    def test_derived_counters(self) -> None:
        checklist = derive_checklist([satisfied_item(1), satisfied_item(2)])
        assert checklist.total_items == 2
        assert checklist.satisfied_items == 2
        assert checklist.completion_percentage == 100

    def test_inconsistent_counters_rejected(self) -> None:
        with pytest.raises(ValidationError):
            VerificationChecklist(
                items=[satisfied_item(1)],
                total_items=1,
                satisfied_items=0,
                completion_percentage=0,
            )


class TestVerificationRun:
    """Tests for run state transitions."""

    def test_complete(self) -> None:
        run = VerificationRun(vendor_id="v1", tenant_id="t1", triggered_by=TriggerSource.MANUAL)
        run.complete(derive_checklist([]), Outcome.VERIFIED, "No requirements apply.")

        assert run.status == RunStatus.COMPLETED
        assert run.is_terminal
        assert run.completed_at is not None

    def test_fail_keeps_message(self) -> None:
        run = VerificationRun(vendor_id="v1", tenant_id="t1", triggered_by=TriggerSource.MANUAL)
        run.fail("Kitchen k1 has no jurisdiction")

        assert run.status == RunStatus.FAILED
        assert run.outcome is None
        assert run.outcome_reason == "Kitchen k1 has no jurisdiction"

    def test_terminal_runs_cannot_transition(self) -> None:
        run = VerificationRun(vendor_id="v1", tenant_id="t1", triggered_by=TriggerSource.MANUAL)
        run.fail("boom")

        with pytest.raises(RunStateError):
            run.complete(derive_checklist([]), Outcome.VERIFIED, "late")
        with pytest.raises(RunStateError):
            run.fail("again")

    def test_outcome_event_requires_completed_run(self) -> None:
        run = VerificationRun(vendor_id="v1", tenant_id="t1", triggered_by=TriggerSource.MANUAL)
        with pytest.raises(RunStateError):
            OutcomeEvent.from_run(run)

        run.complete(derive_checklist([satisfied_item(1)]), Outcome.VERIFIED, "All requirements satisfied")
        event = OutcomeEvent.from_run(run)

        assert event.event_type == "vendor.verified"
        assert event.completion_percentage == 100


class TestHealthDepartment:
    """Tests for health department validation."""

    def test_contact_normalized(self) -> None:
        department = make_health_department(
            "j1",
            contact=DepartmentContact(email=" EHInfo@PH.Example.gov ", phone="+12135551000"),
        )

        assert department.contact.email == "ehinfo@ph.example.gov"
        assert not department.api_available
        assert department.api_config is None

    @pytest.mark.parametrize(
        ("email", "phone"),
        [
            ("not-an-email", "+12135551000"),
            ("ehinfo@ph.example.gov", "(213) 555-1000"),
        ],
    )
    def test_invalid_contact_rejected(self, email: str, phone: str) -> None:
        with pytest.raises(ValidationError):
            DepartmentContact(email=email, phone=phone)

    def test_invalid_portal_url_rejected(self) -> None:
        with pytest.raises(ValidationError):
            make_health_department("j1", inspection_portal_url="not a url")

    def test_api_config(self) -> None:
        department = make_health_department(
            "j1",
            api_available=True,
            api_config=DepartmentApi(
                endpoint="https://api.ph.example.gov/inspections", auth_type=ApiAuthType.API_KEY
            ),
        )

        assert department.api_config is not None
        assert department.api_config.auth_type == ApiAuthType.API_KEY
