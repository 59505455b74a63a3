"""Tests for the regulatory change cascade."""

import pytest

from services.verification.cascade import RegulatoryChangeCascade
from services.verification.dispatch import RunDispatcher
from services.verification.service import VerificationRunManager
from shared.errors import DownstreamUnavailableError
from shared.models import (
    Jurisdiction,
    RunStatus,
    TriggerSource,
    VendorStatus,
    VerificationRun,
)
from shared.repository import InMemoryComplianceRepository
from tests.factories import make_kitchen, make_vendor


class RecordingDispatcher(RunDispatcher):
    def __init__(self, fail_for: set[str] | None = None) -> None:
        self.dispatched: list[VerificationRun] = []
        self.fail_for = fail_for or set()

    async def dispatch(self, run: VerificationRun) -> None:
        if run.vendor_id in self.fail_for:
            raise DownstreamUnavailableError("broker unreachable", service="celery")
        self.dispatched.append(run)


async def seed_kitchen_vendors(
    repository: InMemoryComplianceRepository,
    jurisdiction: Jurisdiction,
    statuses: list[VendorStatus],
) -> list[str]:
    kitchen = make_kitchen(jurisdiction.id)
    await repository.save_kitchen(kitchen)
    ids = []
    for status in statuses:
        vendor = make_vendor(kitchen.id, status=status)
        await repository.save_vendor(vendor)
        ids.append(vendor.id)
    return ids


class TestRegulatoryChangeCascade:
    """Tests for RegulatoryChangeCascade.on_jurisdiction_changed."""

    @pytest.mark.asyncio
    async def test_only_compliant_vendors_are_queued(
        self,
        repository: InMemoryComplianceRepository,
        jurisdictions: dict[str, Jurisdiction],
    ) -> None:
        """Seven verified, two pending and one suspended vendor queue seven runs."""
        dispatcher = RecordingDispatcher()
        cascade = RegulatoryChangeCascade(
            repository, VerificationRunManager(repository, dispatcher=dispatcher)
        )
        statuses = [VendorStatus.VERIFIED] * 7 + [VendorStatus.PENDING] * 2 + [VendorStatus.SUSPENDED]
        vendor_ids = await seed_kitchen_vendors(repository, jurisdictions["la_city"], statuses)

        queued = await cascade.on_jurisdiction_changed(jurisdictions["la_city"].id)

        assert queued == 7
        assert {r.vendor_id for r in dispatcher.dispatched} == set(vendor_ids[:7])
        assert all(r.triggered_by == TriggerSource.REGULATION_UPDATE for r in dispatcher.dispatched)
        assert all(r.status == RunStatus.RUNNING for r in dispatcher.dispatched)

    @pytest.mark.asyncio
    async def test_needs_review_vendors_included(
        self,
        repository: InMemoryComplianceRepository,
        jurisdictions: dict[str, Jurisdiction],
    ) -> None:
        dispatcher = RecordingDispatcher()
        cascade = RegulatoryChangeCascade(
            repository, VerificationRunManager(repository, dispatcher=dispatcher)
        )
        await seed_kitchen_vendors(
            repository,
            jurisdictions["la_city"],
            [VendorStatus.NEEDS_REVIEW, VendorStatus.REJECTED, VendorStatus.EXPIRED],
        )

        assert await cascade.count_affected_vendors(jurisdictions["la_city"].id) == 1
        assert await cascade.on_jurisdiction_changed(jurisdictions["la_city"].id) == 1

    @pytest.mark.asyncio
    async def test_other_jurisdictions_untouched(
        self,
        repository: InMemoryComplianceRepository,
        jurisdictions: dict[str, Jurisdiction],
    ) -> None:
        """Kitchens in child or sibling jurisdictions are not part of the cascade."""
        dispatcher = RecordingDispatcher()
        cascade = RegulatoryChangeCascade(
            repository, VerificationRunManager(repository, dispatcher=dispatcher)
        )
        await seed_kitchen_vendors(repository, jurisdictions["la_city"], [VendorStatus.VERIFIED])
        await seed_kitchen_vendors(repository, jurisdictions["orange"], [VendorStatus.VERIFIED])

        queued = await cascade.on_jurisdiction_changed(jurisdictions["la_county"].id)

        assert queued == 0
        assert dispatcher.dispatched == []

    @pytest.mark.asyncio
    async def test_vendor_failure_does_not_stop_cascade(
        self,
        repository: InMemoryComplianceRepository,
        jurisdictions: dict[str, Jurisdiction],
    ) -> None:
        city = jurisdictions["la_city"]
        kitchen = make_kitchen(city.id)
        await repository.save_kitchen(kitchen)
        vendors = [make_vendor(kitchen.id, status=VendorStatus.VERIFIED) for _ in range(3)]
        for vendor in vendors:
            await repository.save_vendor(vendor)

        dispatcher = RecordingDispatcher(fail_for={vendors[1].id})
        cascade = RegulatoryChangeCascade(
            repository, VerificationRunManager(repository, dispatcher=dispatcher)
        )

        queued = await cascade.on_jurisdiction_changed(city.id)

        assert queued == 2
        assert {r.vendor_id for r in dispatcher.dispatched} == {vendors[0].id, vendors[2].id}

    @pytest.mark.asyncio
    async def test_inline_cascade_updates_vendors(
        self,
        run_manager: VerificationRunManager,
        repository: InMemoryComplianceRepository,
        jurisdictions: dict[str, Jurisdiction],
    ) -> None:
        """Without a dispatcher the cascade runs each verification to completion."""
        cascade = RegulatoryChangeCascade(repository, run_manager)
        vendor_ids = await seed_kitchen_vendors(
            repository, jurisdictions["la_city"], [VendorStatus.VERIFIED, VendorStatus.VERIFIED]
        )

        queued = await cascade.on_jurisdiction_changed(jurisdictions["la_city"].id)

        assert queued == 2
        for vendor_id in vendor_ids:
            runs = await repository.list_runs_for_vendor(vendor_id)
            assert len(runs) == 1
            assert runs[0].status == RunStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_no_kitchens(
        self,
        run_manager: VerificationRunManager,
        repository: InMemoryComplianceRepository,
        jurisdictions: dict[str, Jurisdiction],
    ) -> None:
        cascade = RegulatoryChangeCascade(repository, run_manager)
        assert await cascade.on_jurisdiction_changed(jurisdictions["us"].id) == 0
