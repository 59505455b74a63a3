"""
Repository Module
=================

Persistence for jurisdictions, requirements, vendors, verification runs
and regulatory update logs.

Usage:
    from shared.repository import InMemoryComplianceRepository

    repository = InMemoryComplianceRepository()
    await repository.save_jurisdiction(jurisdiction)
"""

from shared.repository.base import ComplianceRepository
from shared.repository.in_memory import InMemoryComplianceRepository
from shared.repository.postgres import PostgresComplianceRepository


__all__ = [
    "ComplianceRepository",
    "InMemoryComplianceRepository",
    "PostgresComplianceRepository",
]
