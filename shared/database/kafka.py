"""
Kafka Client
============

Producer for the two event streams the engine emits:

- ``kitchen.verification.outcomes``: one event per terminal verification run
- ``kitchen.regulatory.changes``: one event per processed regulatory update

Messages are JSON, keyed so that every event for one vendor (or one
jurisdiction) lands on the same partition.

Version: 0.1.0
"""

import json
import time
from typing import Any

from aiokafka import AIOKafkaProducer
from pydantic import BaseModel

from shared.config import settings
from shared.logging import get_logger

logger = get_logger(__name__)


class Topics:
    """Kafka topic names."""

    VERIFICATION_OUTCOMES = "kitchen.verification.outcomes"
    REGULATORY_CHANGES = "kitchen.regulatory.changes"


def encode_event(value: BaseModel | dict[str, Any]) -> bytes:
    """Serialize an event body to JSON bytes."""
    if isinstance(value, BaseModel):
        return value.model_dump_json().encode("utf-8")
    return json.dumps(value, default=str).encode("utf-8")


class KafkaClient:
    """Process-wide event producer."""

    _producer: AIOKafkaProducer | None = None

    @classmethod
    async def get_producer(cls) -> AIOKafkaProducer:
        if cls._producer is None:
            producer = AIOKafkaProducer(
                bootstrap_servers=settings.kafka.bootstrap_servers,
                security_protocol=settings.kafka.security_protocol,
                compression_type="gzip",
                acks="all",
                enable_idempotence=True,
            )
            await producer.start()
            cls._producer = producer
            logger.info(
                "event_producer_started",
                bootstrap_servers=settings.kafka.bootstrap_servers,
            )
        return cls._producer

    @classmethod
    async def close(cls) -> None:
        producer, cls._producer = cls._producer, None
        if producer is not None:
            await producer.stop()
            logger.info("event_producer_stopped")

    @classmethod
    async def health_check(cls) -> dict[str, Any]:
        """Report broker count and whether both event topics exist."""
        start = time.perf_counter()
        try:
            producer = await cls.get_producer()
            metadata = await producer.client.fetch_all_metadata()
        except Exception as e:
            logger.error("event_producer_health_check_failed", error=str(e))
            return {"status": "unhealthy", "error": str(e)}

        known = metadata.topics()
        return {
            "status": "healthy",
            "latency_ms": round((time.perf_counter() - start) * 1000, 2),
            "brokers": len(metadata.brokers()),
            "missing_topics": sorted(
                t for t in (Topics.VERIFICATION_OUTCOMES, Topics.REGULATORY_CHANGES)
                if t not in known
            ),
        }

    @classmethod
    async def publish(
        cls,
        topic: str,
        value: BaseModel | dict[str, Any],
        key: str,
        event_type: str,
        **headers: str,
    ) -> None:
        """
        Publish one event and wait for the broker acknowledgement.

        Args:
            topic: One of ``Topics``
            value: Event body (pydantic model or JSON-ready dict)
            key: Partition key (vendor id or jurisdiction id)
            event_type: Stored as the ``event_type`` header
            **headers: Extra string headers, e.g. ``tenant_id``
        """
        producer = await cls.get_producer()
        kafka_headers = [("event_type", event_type.encode("utf-8"))]
        kafka_headers.extend((name, v.encode("utf-8")) for name, v in headers.items())

        await producer.send_and_wait(
            topic,
            value=encode_event(value),
            key=key.encode("utf-8"),
            headers=kafka_headers,
        )
        logger.debug("event_published", topic=topic, key=key, event_type=event_type)
