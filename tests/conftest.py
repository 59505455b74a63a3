"""
Test Configuration
==================

Pytest fixtures for the kitchen compliance tests.
"""

import os

# Set test environment before any settings are loaded
os.environ["ENVIRONMENT"] = "testing"
os.environ["CLEARINGHOUSE_DETECTOR"] = "null"
os.environ["KAFKA_ENABLED"] = "false"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"

import pytest
import pytest_asyncio
from hypothesis import Verbosity, settings as hypothesis_settings

from services.regulatory_intelligence.catalog import RequirementCatalog
from services.regulatory_intelligence.hierarchy import JurisdictionHierarchy
from services.verification.events import InMemoryOutcomePublisher
from services.verification.locks import LocalVendorLock
from services.verification.service import VerificationRunManager
from shared.config import VerificationSettings
from shared.models import CoverageStatus, Jurisdiction, JurisdictionType
from shared.repository import InMemoryComplianceRepository
from tests.factories import make_jurisdiction


# Hypothesis profiles for property-based tests
hypothesis_settings.register_profile(
    "default",
    max_examples=100,
    deadline=None,
    verbosity=Verbosity.normal,
)
hypothesis_settings.register_profile(
    "ci",
    max_examples=300,
    deadline=None,
    verbosity=Verbosity.quiet,
)
hypothesis_settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "default"))


@pytest.fixture
def repository() -> InMemoryComplianceRepository:
    """Fresh in-memory repository for each test."""
    return InMemoryComplianceRepository()


@pytest_asyncio.fixture
async def jurisdictions(repository: InMemoryComplianceRepository) -> dict[str, Jurisdiction]:
    """Seeded hierarchy: US > California > Los Angeles County > Los Angeles."""
    us = make_jurisdiction("US", "United States", JurisdictionType.COUNTRY)
    ca = make_jurisdiction(
        "US-CA", "California", JurisdictionType.STATE, parent=us, coverage=CoverageStatus.FULL
    )
    county = make_jurisdiction(
        "US-CA-LAC",
        "Los Angeles County",
        JurisdictionType.COUNTY,
        parent=ca,
        coverage=CoverageStatus.PARTIAL,
    )
    city = make_jurisdiction(
        "US-CA-LA", "Los Angeles", JurisdictionType.CITY, parent=county, coverage=CoverageStatus.FULL
    )
    orange = make_jurisdiction("US-CA-ORC", "Orange County", JurisdictionType.COUNTY, parent=ca)

    seeded = {"us": us, "ca": ca, "la_county": county, "la_city": city, "orange": orange}
    for jurisdiction in seeded.values():
        await repository.save_jurisdiction(jurisdiction)
    return seeded


@pytest.fixture
def hierarchy(repository: InMemoryComplianceRepository) -> JurisdictionHierarchy:
    return JurisdictionHierarchy(repository)


@pytest.fixture
def catalog(repository: InMemoryComplianceRepository) -> RequirementCatalog:
    return RequirementCatalog(repository)


@pytest.fixture
def verification_config() -> VerificationSettings:
    """Verification settings with a short lock wait."""
    return VerificationSettings(lock_wait_seconds=0.5, timeout_seconds=5.0)


@pytest.fixture
def publisher() -> InMemoryOutcomePublisher:
    return InMemoryOutcomePublisher()


@pytest.fixture
def run_manager(
    repository: InMemoryComplianceRepository,
    publisher: InMemoryOutcomePublisher,
    verification_config: VerificationSettings,
) -> VerificationRunManager:
    """Run manager executing inline against the in-memory repository."""
    return VerificationRunManager(
        repository,
        publisher=publisher,
        locks=LocalVendorLock(),
        config=verification_config,
    )
