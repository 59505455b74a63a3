#!/usr/bin/env python3
"""
Database Initialization Script
==============================

Create the compliance schema and tables, verify Redis and Kafka, and
optionally seed a sample jurisdiction hierarchy with requirements.

Usage:
    python scripts/init_databases.py
    python scripts/init_databases.py --postgres-only
    python scripts/init_databases.py --seed

Version: 0.1.0
"""

import argparse
import asyncio
import sys
from datetime import timedelta
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from shared.logging import get_logger, setup_logging

setup_logging(log_level="INFO", json_logs=False, service_name="init-db")
logger = get_logger(__name__)


async def init_postgres() -> bool:
    """Create the compliance schema and all ORM tables."""
    from shared.database.postgres import PostgresClient

    logger.info("Initializing PostgreSQL...")

    try:
        tables = await PostgresClient.create_tables()
    except Exception as e:
        logger.error(f"PostgreSQL initialization failed: {e}")
        return False

    health = await PostgresClient.health_check()
    if health.get("status") != "healthy":
        logger.error(f"PostgreSQL health check failed: {health.get('error')}")
        return False

    logger.info(
        f"PostgreSQL {health['server_version']}: "
        f"{health['tables']}/{len(tables)} tables in schema {health['schema']}"
    )
    return True


async def init_redis() -> bool:
    """Verify the Redis connection used for vendor locks and Celery."""
    from shared.database.redis import RedisClient

    logger.info("Initializing Redis...")

    health = await RedisClient.health_check()
    if health.get("status") == "healthy":
        logger.info(f"Redis connected: v{health['redis_version']}, {health['locks_held']} vendor lock(s) held")
        return True

    logger.error(f"Redis health check failed: {health.get('error')}")
    return False


async def init_kafka() -> bool:
    """Verify the Kafka connection used for outcome and change events."""
    from shared.config import settings
    from shared.database.kafka import KafkaClient

    if not settings.kafka.enabled:
        logger.info("Kafka disabled, skipping")
        return True

    logger.info("Initializing Kafka...")

    health = await KafkaClient.health_check()
    if health.get("status") == "healthy":
        logger.info(f"Kafka connected: {health['brokers']} broker(s)")
        if health["missing_topics"]:
            logger.warning(f"Kafka topics not created yet: {', '.join(health['missing_topics'])}")
        return True

    logger.error(f"Kafka health check failed: {health.get('error')}")
    return False


async def seed_data() -> bool:
    """Seed US > California > Los Angeles County > Los Angeles with requirements
    and the county health department."""
    from services.regulatory_intelligence.catalog import RequirementCatalog
    from services.regulatory_intelligence.hierarchy import JurisdictionHierarchy
    from services.regulatory_intelligence.service import RegulatoryIntelligenceService
    from shared.errors import ComplianceError
    from shared.models import (
        Address,
        CoverageStatus,
        DepartmentContact,
        ExpirationRules,
        HealthDepartment,
        Jurisdiction,
        JurisdictionMetadata,
        JurisdictionType,
        Priority,
        Requirement,
        RequirementType,
        utcnow,
    )
    from shared.repository import PostgresComplianceRepository

    logger.info("Seeding sample jurisdictions...")

    repository = PostgresComplianceRepository()
    hierarchy = JurisdictionHierarchy(repository)
    catalog = RequirementCatalog(repository)

    try:
        us = await hierarchy.register(
            Jurisdiction(code="US", name="United States", type=JurisdictionType.COUNTRY)
        )
        ca = await hierarchy.register(
            Jurisdiction(
                code="US-CA",
                name="California",
                type=JurisdictionType.STATE,
                parent_id=us.id,
                metadata=JurisdictionMetadata(coverage_status=CoverageStatus.FULL),
            )
        )
        county = await hierarchy.register(
            Jurisdiction(
                code="US-CA-LAC",
                name="Los Angeles County",
                type=JurisdictionType.COUNTY,
                parent_id=ca.id,
                metadata=JurisdictionMetadata(coverage_status=CoverageStatus.PARTIAL),
            )
        )
        city = await hierarchy.register(
            Jurisdiction(
                code="US-CA-LA",
                name="Los Angeles",
                type=JurisdictionType.CITY,
                parent_id=county.id,
                metadata=JurisdictionMetadata(coverage_status=CoverageStatus.FULL),
            )
        )

        service = RegulatoryIntelligenceService(repository, hierarchy, catalog)
        await service.register_health_department(
            HealthDepartment(
                jurisdiction_id=county.id,
                name="Los Angeles County Department of Public Health",
                website="http://publichealth.lacounty.gov",
                contact=DepartmentContact(
                    email="ehmail@ph.lacounty.gov",
                    phone="+18007007415",
                    address=Address(
                        street="5050 Commerce Drive",
                        city="Baldwin Park",
                        state="CA",
                        postal_code="91706",
                    ),
                ),
                inspection_portal_url="http://publichealth.lacounty.gov/eh/inspection.htm",
            )
        )

        effective_from = utcnow() - timedelta(days=1)
        for requirement_type, name, priority in [
            (RequirementType.LICENSE, "Business Tax Registration Certificate", Priority.CRITICAL),
            (RequirementType.PERMIT, "Public Health Permit", Priority.CRITICAL),
            (RequirementType.INSURANCE, "General Liability Insurance", Priority.HIGH),
            (RequirementType.CERTIFICATION, "Food Handler Card", Priority.HIGH),
            (RequirementType.INSPECTION, "Annual Health Inspection", Priority.MEDIUM),
        ]:
            await catalog.add(
                Requirement(
                    jurisdiction_id=city.id,
                    requirement_type=requirement_type,
                    name=name,
                    priority=priority,
                    effective_from=effective_from,
                    expiration_rules=ExpirationRules(
                        has_expiration=requirement_type != RequirementType.INSPECTION
                    ),
                )
            )

    except ComplianceError as e:
        logger.error(f"Seeding failed: {e}")
        return False

    logger.info(f"Seeded {city.full_path} with 5 requirements and the county health department")
    return True


async def main(args: argparse.Namespace) -> int:
    """Main initialization function."""
    from shared.workers import close_clients

    logger.info("=" * 60)
    logger.info("Kitchen Compliance Database Initialization")
    logger.info("=" * 60)

    results = {}

    try:
        results["PostgreSQL"] = await init_postgres()

        if args.all:
            results["Redis"] = await init_redis()
            results["Kafka"] = await init_kafka()

        if args.seed:
            results["Seed Data"] = await seed_data()
    finally:
        await close_clients()

    # Summary
    logger.info("=" * 60)
    logger.info("Initialization Summary")
    logger.info("=" * 60)

    failed = []
    for name, success in results.items():
        status = "OK" if success else "FAILED"
        logger.info(f"  {name}: {status}")
        if not success:
            failed.append(name)

    if failed:
        logger.error(f"Failed: {', '.join(failed)}")
        return 1

    logger.info("All stores initialized successfully")
    return 0


def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Initialize kitchen compliance stores",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--postgres-only",
        action="store_true",
        help="Initialize only PostgreSQL",
    )
    parser.add_argument(
        "--seed",
        action="store_true",
        help="Seed a sample Los Angeles jurisdiction hierarchy",
    )

    args = parser.parse_args()
    args.all = not args.postgres_only

    return args


if __name__ == "__main__":
    args = parse_args()
    exit_code = asyncio.run(main(args))
    sys.exit(exit_code)
