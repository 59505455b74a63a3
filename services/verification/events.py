"""
Outcome Events
==============

Hands completed-run outcomes to the notification subsystem.

Version: 0.1.0
"""

from abc import ABC, abstractmethod

from shared.database.kafka import KafkaClient, Topics
from shared.logging import get_logger
from shared.models import OutcomeEvent


logger = get_logger(__name__)


class OutcomePublisher(ABC):
    """Destination for outcome events."""

    @abstractmethod
    async def publish(self, event: OutcomeEvent) -> None:
        ...


class KafkaOutcomePublisher(OutcomePublisher):
    """Publishes outcome events to Kafka, keyed by vendor."""

    def __init__(self, topic: str = Topics.VERIFICATION_OUTCOMES) -> None:
        self.topic = topic

    async def publish(self, event: OutcomeEvent) -> None:
        await KafkaClient.publish(
            topic=self.topic,
            value=event,
            key=event.vendor_id,
            event_type=event.event_type,
            tenant_id=event.tenant_id,
        )
        logger.info(
            "outcome_event_published",
            event_type=event.event_type,
            verification_run_id=event.verification_run_id,
        )


class InMemoryOutcomePublisher(OutcomePublisher):
    """Collects events in a list (tests, local runs)."""

    def __init__(self) -> None:
        self.events: list[OutcomeEvent] = []

    async def publish(self, event: OutcomeEvent) -> None:
        self.events.append(event)
