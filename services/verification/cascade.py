"""
Regulatory Change Cascade
=========================

Re-verifies every currently-compliant vendor in a jurisdiction after its
regulations change.

Version: 0.1.0
"""

from services.verification.service import VerificationRunManager
from shared.logging import get_logger
from shared.models import TriggerSource, Vendor, VendorStatus
from shared.repository import ComplianceRepository


logger = get_logger(__name__)


# Pending, rejected and suspended vendors are not currently compliant, so
# a re-check would not change what they have to do.
CASCADE_STATUSES = frozenset({VendorStatus.VERIFIED, VendorStatus.NEEDS_REVIEW})


class RegulatoryChangeCascade:
    """Triggers `regulation_update` runs for vendors in a changed jurisdiction."""

    def __init__(
        self,
        repository: ComplianceRepository,
        run_manager: VerificationRunManager,
    ) -> None:
        self.repository = repository
        self.run_manager = run_manager

    async def affected_vendors(self, jurisdiction_id: str) -> list[Vendor]:
        """Verified or needs-review vendors in kitchens of the jurisdiction."""
        kitchens = await self.repository.list_kitchens_in_jurisdiction(jurisdiction_id)
        if not kitchens:
            return []
        return await self.repository.list_vendors(
            kitchen_ids=[k.id for k in kitchens],
            statuses=CASCADE_STATUSES,
        )

    async def count_affected_vendors(self, jurisdiction_id: str) -> int:
        return len(await self.affected_vendors(jurisdiction_id))

    async def on_jurisdiction_changed(self, jurisdiction_id: str) -> int:
        """
        Trigger re-verification for the jurisdiction's affected vendors.

        A failure for one vendor is logged and does not stop the others.

        Returns:
            Number of runs successfully queued
        """
        vendors = await self.affected_vendors(jurisdiction_id)
        logger.info(
            "regulatory_cascade_started",
            jurisdiction_id=jurisdiction_id,
            affected_vendors=len(vendors),
        )

        queued = 0
        failed = 0
        for vendor in vendors:
            try:
                await self.run_manager.trigger_verification(
                    vendor.id,
                    vendor.tenant_id,
                    TriggerSource.REGULATION_UPDATE,
                )
                queued += 1
            except Exception as e:
                failed += 1
                logger.error(
                    "regulatory_cascade_vendor_failed",
                    jurisdiction_id=jurisdiction_id,
                    vendor_id=vendor.id,
                    error=str(e),
                )

        logger.info(
            "regulatory_cascade_completed",
            jurisdiction_id=jurisdiction_id,
            queued=queued,
            failed=failed,
        )
        return queued
