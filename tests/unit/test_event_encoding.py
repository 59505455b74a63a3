"""
Unit tests for Kafka event encoding.
"""

import json
from datetime import UTC, datetime

from shared.database.kafka import encode_event
from shared.models import Outcome, OutcomeEvent


def test_encodes_outcome_event_model() -> None:
    event = OutcomeEvent(
        event_type="vendor_verified",
        tenant_id="tenant-1",
        vendor_id="vendor-1",
        verification_run_id="run-1",
        outcome=Outcome.VERIFIED,
        completion_percentage=100,
        outcome_reason="All requirements satisfied",
        occurred_at=datetime(2026, 3, 1, 12, 0, tzinfo=UTC),
    )

    body = json.loads(encode_event(event))

    assert body["outcome"] == "verified"
    assert body["vendor_id"] == "vendor-1"
    assert body["occurred_at"].startswith("2026-03-01T12:00:00")


def test_encodes_dict_with_datetimes() -> None:
    detected = datetime(2026, 3, 1, tzinfo=UTC)

    body = json.loads(encode_event({"jurisdiction_id": "j-1", "detected_at": detected}))

    assert body == {"jurisdiction_id": "j-1", "detected_at": str(detected)}
