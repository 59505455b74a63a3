"""
Regulatory Change Detection
===========================

Periodic clearinghouse sweep that checks covered jurisdictions for
regulatory changes and cascades re-verification.

Features:
- Swappable change detectors (null, simulated, externally supplied)
- Impact assessment and update logging
- Re-verification cascade for changes that affect requirements
- Event publishing to Kafka

Version: 0.1.0
"""

import random
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from services.regulatory_intelligence.service import RegulatoryIntelligenceService
from shared.config import ChangeDetectorMode, settings
from shared.database.kafka import KafkaClient, Topics
from shared.errors import NotFoundError
from shared.logging import get_logger
from shared.models import (
    CoverageStatus,
    ImpactAssessment,
    Jurisdiction,
    RegUpdateLog,
    UpdateSource,
    UpdateType,
    Urgency,
    utcnow,
)
from shared.repository import ComplianceRepository

if TYPE_CHECKING:
    from services.verification.cascade import RegulatoryChangeCascade

logger = get_logger(__name__)


SWEPT_COVERAGE = frozenset({CoverageStatus.FULL, CoverageStatus.PARTIAL})


class ChangeSeverity(str, Enum):
    """Severity levels for changes."""

    LOW = "low"  # Contact details, formatting
    MEDIUM = "medium"  # Substantive changes to existing requirements
    HIGH = "high"  # New requirements or significant modifications
    CRITICAL = "critical"  # Changes affecting enforcement, penalties

    @property
    def urgency(self) -> Urgency:
        return _SEVERITY_URGENCY[self]


_SEVERITY_URGENCY = {
    ChangeSeverity.CRITICAL: Urgency.IMMEDIATE,
    ChangeSeverity.HIGH: Urgency.HIGH,
    ChangeSeverity.MEDIUM: Urgency.MEDIUM,
    ChangeSeverity.LOW: Urgency.LOW,
}


@dataclass
class DetectedChange:
    """A detected change in a jurisdiction's regulations."""

    jurisdiction_id: str
    update_type: UpdateType = UpdateType.REQUIREMENT_MODIFIED
    severity: ChangeSeverity = ChangeSeverity.MEDIUM

    summary: str = ""
    affected_requirement_ids: list[str] = field(default_factory=list)

    source: UpdateSource = UpdateSource.MANUAL
    source_url: str | None = None

    detected_at: datetime = field(default_factory=utcnow)


# =============================================================================
# Detectors
# =============================================================================


class ChangeDetector(ABC):
    """Decides whether a jurisdiction's regulations changed."""

    mode: ChangeDetectorMode = ChangeDetectorMode.EXTERNAL

    @abstractmethod
    async def detect(self, jurisdiction: Jurisdiction) -> DetectedChange | None:
        """
        Check a jurisdiction for changes.

        Returns:
            The detected change, or None when nothing changed
        """
        ...


class NullChangeDetector(ChangeDetector):
    """Never reports a change."""

    mode = ChangeDetectorMode.NULL

    async def detect(self, jurisdiction: Jurisdiction) -> DetectedChange | None:
        return None


class SimulatedChangeDetector(ChangeDetector):
    """
    Reports a modified requirement with a fixed probability.

    Stands in for a real source integration in development and demos.
    """

    mode = ChangeDetectorMode.SIMULATED

    def __init__(self, probability: float = 0.1, rng: random.Random | None = None) -> None:
        if not 0.0 <= probability <= 1.0:
            raise ValueError("probability must be between 0 and 1")
        self.probability = probability
        self.rng = rng or random.Random()

    async def detect(self, jurisdiction: Jurisdiction) -> DetectedChange | None:
        if self.rng.random() >= self.probability:
            return None

        logger.info(
            "simulated_change_detected",
            jurisdiction_id=jurisdiction.id,
            jurisdiction_code=jurisdiction.code,
        )
        return DetectedChange(
            jurisdiction_id=jurisdiction.id,
            update_type=UpdateType.REQUIREMENT_MODIFIED,
            severity=ChangeSeverity.MEDIUM,
            summary=f"Simulated regulatory update for {jurisdiction.name}",
            source=UpdateSource.SIMULATED,
        )


# Global detector instance
_detector: ChangeDetector | None = None


def get_change_detector() -> ChangeDetector:
    """
    Get the configured change detector.

    Returns:
        ChangeDetector based on `settings.clearinghouse.detector`
    """
    global _detector

    if _detector is None:
        mode = settings.clearinghouse.detector

        if mode == ChangeDetectorMode.NULL:
            _detector = NullChangeDetector()
        elif mode == ChangeDetectorMode.SIMULATED:
            _detector = SimulatedChangeDetector(settings.clearinghouse.simulated_probability)
        elif mode == ChangeDetectorMode.EXTERNAL:
            raise RuntimeError(
                "CLEARINGHOUSE_DETECTOR=external requires a detector installed "
                "with set_change_detector()"
            )
        else:
            raise ValueError(f"Unknown change detector mode: {mode}")

        logger.info("change_detector_initialized", mode=mode.value)

    return _detector


def set_change_detector(detector: ChangeDetector) -> None:
    """
    Set a custom change detector.

    Args:
        detector: ChangeDetector instance
    """
    global _detector
    _detector = detector
    logger.info("change_detector_set", mode=detector.mode.value)


def reset_change_detector() -> None:
    """Reset the detector to be re-initialized."""
    global _detector
    _detector = None


# =============================================================================
# Clearinghouse Sweep
# =============================================================================


@dataclass
class SweepResult:
    """Summary of one clearinghouse sweep."""

    jurisdictions_checked: int = 0
    jurisdictions_processed: int = 0
    updates_detected: int = 0
    vendors_queued: int = 0
    failures: int = 0
    update_log_ids: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "jurisdictions_checked": self.jurisdictions_checked,
            "jurisdictions_processed": self.jurisdictions_processed,
            "updates_detected": self.updates_detected,
            "vendors_queued": self.vendors_queued,
            "failures": self.failures,
            "update_log_ids": list(self.update_log_ids),
        }


class ClearinghouseSweep:
    """
    Checks jurisdictions for regulatory changes.

    For each detected change: assess impact, log it, cascade
    re-verification when required, mark the log processed and publish a
    change event.
    """

    def __init__(
        self,
        repository: ComplianceRepository,
        cascade: "RegulatoryChangeCascade",
        detector: ChangeDetector | None = None,
        intelligence: RegulatoryIntelligenceService | None = None,
        publish_events: bool | None = None,
    ) -> None:
        self.repository = repository
        self.cascade = cascade
        self.detector = detector or get_change_detector()
        self.intelligence = intelligence or RegulatoryIntelligenceService(repository)
        self.publish_events = settings.kafka.enabled if publish_events is None else publish_events

    async def run(self, jurisdiction_id: str | None = None) -> SweepResult:
        """
        Sweep one jurisdiction, or every jurisdiction under coverage.

        A failure in one jurisdiction is logged and counted; the sweep
        continues with the rest.

        Raises:
            NotFoundError: `jurisdiction_id` was given but does not exist
        """
        if jurisdiction_id:
            jurisdiction = await self.repository.get_jurisdiction(jurisdiction_id)
            if jurisdiction is None:
                raise NotFoundError("Jurisdiction", jurisdiction_id)
            jurisdictions = [jurisdiction]
        else:
            jurisdictions = await self.repository.list_jurisdictions(
                coverage_statuses=SWEPT_COVERAGE,
            )

        logger.info(
            "clearinghouse_sweep_started",
            jurisdictions=len(jurisdictions),
            detector=self.detector.mode.value,
        )

        result = SweepResult(jurisdictions_checked=len(jurisdictions))
        for jurisdiction in jurisdictions:
            try:
                log = await self._process(jurisdiction, result)
                if log is not None:
                    result.update_log_ids.append(log.id)
                result.jurisdictions_processed += 1
            except Exception as e:
                result.failures += 1
                logger.error(
                    "clearinghouse_jurisdiction_failed",
                    jurisdiction_id=jurisdiction.id,
                    error=str(e),
                )

        logger.info("clearinghouse_sweep_completed", **result.to_dict())
        return result

    async def _process(
        self,
        jurisdiction: Jurisdiction,
        result: SweepResult,
    ) -> RegUpdateLog | None:
        change = await self.detector.detect(jurisdiction)
        if change is None:
            return None
        result.updates_detected += 1

        requires_reverification = change.update_type.requires_reverification
        affected = (
            await self.cascade.count_affected_vendors(jurisdiction.id)
            if requires_reverification
            else 0
        )
        log = await self.intelligence.log_reg_update(
            jurisdiction.id,
            change.update_type,
            affected_requirement_ids=change.affected_requirement_ids,
            diff_summary=change.summary,
            impact_assessment=ImpactAssessment(
                affected_vendor_count=affected,
                requires_reverification=requires_reverification,
                urgency=change.severity.urgency,
            ),
            source=change.source,
        )

        if requires_reverification:
            queued = await self.cascade.on_jurisdiction_changed(jurisdiction.id)
            result.vendors_queued += queued

        log = await self.intelligence.mark_update_processed(log.id)
        await self._publish_change_event(log, change)
        return log

    async def _publish_change_event(self, log: RegUpdateLog, change: DetectedChange) -> None:
        """Publish change event to Kafka."""
        if not self.publish_events:
            return
        try:
            await KafkaClient.publish(
                topic=Topics.REGULATORY_CHANGES,
                value={
                    "update_log_id": log.id,
                    "jurisdiction_id": log.jurisdiction_id,
                    "update_type": log.update_type.value,
                    "severity": change.severity.value,
                    "urgency": log.impact_assessment.urgency.value,
                    "affected_vendor_count": log.impact_assessment.affected_vendor_count,
                    "summary": log.diff_summary,
                    "detected_at": log.detected_at.isoformat(),
                },
                key=log.jurisdiction_id,
                event_type="regulatory_change",
            )
        except Exception as e:
            logger.error("kafka_publish_failed", error=str(e))
