"""
Verification Service
====================

Evaluates vendors against the requirements of their kitchen's
jurisdiction and records the result as a verification run.

This service provides:
- Rule evaluation of approved documents into a checklist
- Outcome resolution (verified, needs_review, rejected, expired)
- The verification run lifecycle with per-vendor serialization
- Re-verification cascade after regulatory changes

Celery tasks live in `services.verification.tasks`.

Version: 0.1.0
"""

from services.verification.cascade import RegulatoryChangeCascade
from services.verification.dispatch import CeleryRunDispatcher, RunDispatcher
from services.verification.events import (
    InMemoryOutcomePublisher,
    KafkaOutcomePublisher,
    OutcomePublisher,
)
from services.verification.locks import LocalVendorLock, RedisVendorLock, VendorLock
from services.verification.outcome import OutcomeDecision, OutcomeResolver
from services.verification.rules import RuleEvaluator, RuleThresholds, collect_expiry_notices
from services.verification.service import VerificationRunManager

__version__ = "0.1.0"

__all__ = [
    "VerificationRunManager",
    "RegulatoryChangeCascade",
    "RuleEvaluator",
    "RuleThresholds",
    "collect_expiry_notices",
    "OutcomeResolver",
    "OutcomeDecision",
    "VendorLock",
    "LocalVendorLock",
    "RedisVendorLock",
    "OutcomePublisher",
    "KafkaOutcomePublisher",
    "InMemoryOutcomePublisher",
    "RunDispatcher",
    "CeleryRunDispatcher",
]
