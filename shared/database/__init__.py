"""
Database Module
===============

Async clients for the verification engine's data stores.

Clients:
- PostgreSQL (asyncpg + SQLAlchemy): jurisdictions, requirements, runs
- Redis (redis.asyncio): per-vendor locks, Celery broker
- Kafka (aiokafka): outcome and regulatory change events

Usage:
    from shared.database import postgres_session

    async with postgres_session() as session:
        result = await session.execute(select(VerificationRunRow))
"""

from shared.database.kafka import KafkaClient, Topics
from shared.database.postgres import Base, PostgresClient, postgres_session
from shared.database.redis import RedisClient, redis_lock


__all__ = [
    # PostgreSQL
    "postgres_session",
    "PostgresClient",
    "Base",
    # Redis
    "RedisClient",
    "redis_lock",
    # Kafka
    "KafkaClient",
    "Topics",
]
