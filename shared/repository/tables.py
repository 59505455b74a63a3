"""
Database Tables
===============

SQLAlchemy ORM models for the verification engine.

Checklists and nested policies are stored as JSON; they are always read
as a unit together with their parent row.

Version: 0.1.0
"""

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    Boolean,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)

from shared.database.postgres import Base


SCHEMA = "compliance"


class JurisdictionRow(Base):
    """Geographic regulatory scope."""

    __tablename__ = "jurisdictions"
    __table_args__ = (
        Index("ix_jurisdictions_parent", "parent_id"),
        Index("ix_jurisdictions_type_name", "type", "name"),
        {"schema": SCHEMA},
    )

    id = Column(String(36), primary_key=True)
    code = Column(String(32), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    type = Column(String(16), nullable=False)
    parent_id = Column(String(36), ForeignKey(f"{SCHEMA}.jurisdictions.id"))
    full_path = Column(String(1000))
    # "metadata" is reserved on declarative classes
    details = Column("metadata", JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False)


class RequirementRow(Base):
    """Versioned regulatory requirement."""

    __tablename__ = "requirements"
    __table_args__ = (
        Index("ix_requirements_jurisdiction", "jurisdiction_id", "effective_from"),
        CheckConstraint(
            "effective_to IS NULL OR effective_from <= effective_to",
            name="check_requirement_window",
        ),
        {"schema": SCHEMA},
    )

    id = Column(String(36), primary_key=True)
    jurisdiction_id = Column(
        String(36), ForeignKey(f"{SCHEMA}.jurisdictions.id"), nullable=False
    )
    requirement_type = Column(String(32), nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    applies_to = Column(JSON, nullable=False, default=dict)
    frequency = Column(String(16), nullable=False)
    expiration_rules = Column(JSON, nullable=False, default=dict)
    verification_method = Column(String(32), nullable=False)
    priority = Column(String(16), nullable=False)
    version = Column(String(32), nullable=False)
    effective_from = Column(DateTime(timezone=True), nullable=False)
    effective_to = Column(DateTime(timezone=True))
    source_url = Column(String(1000))
    created_at = Column(DateTime(timezone=True), nullable=False)


class HealthDepartmentRow(Base):
    """Local health department, one per jurisdiction."""

    __tablename__ = "health_departments"
    __table_args__ = (
        Index("ix_health_departments_api", "api_available"),
        {"schema": SCHEMA},
    )

    id = Column(String(36), primary_key=True)
    jurisdiction_id = Column(
        String(36), ForeignKey(f"{SCHEMA}.jurisdictions.id"), nullable=False, unique=True
    )
    name = Column(String(255), nullable=False)
    website = Column(String(1000))
    contact = Column(JSON, nullable=False)
    inspection_portal_url = Column(String(1000))
    api_available = Column(Boolean, nullable=False, default=False)
    api_config = Column(JSON)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)


class KitchenRow(Base):
    __tablename__ = "kitchens"
    __table_args__ = (
        Index("ix_kitchens_jurisdiction", "jurisdiction_id"),
        {"schema": SCHEMA},
    )

    id = Column(String(36), primary_key=True)
    tenant_id = Column(String(36), nullable=False, index=True)
    jurisdiction_id = Column(String(36), ForeignKey(f"{SCHEMA}.jurisdictions.id"))
    name = Column(String(255), nullable=False)
    type = Column(String(16), nullable=False)
    status = Column(String(16), nullable=False)
    address = Column(JSON, nullable=False, default=dict)


class VendorRow(Base):
    __tablename__ = "vendors"
    __table_args__ = (
        Index("ix_vendors_kitchen_status", "kitchen_id", "status"),
        Index("ix_vendors_tenant_status", "tenant_id", "status"),
        {"schema": SCHEMA},
    )

    id = Column(String(36), primary_key=True)
    tenant_id = Column(String(36), nullable=False)
    kitchen_id = Column(String(36), ForeignKey(f"{SCHEMA}.kitchens.id"))
    business_name = Column(String(255), nullable=False)
    legal_entity_type = Column(String(32), nullable=False)
    status = Column(String(16), nullable=False)
    last_verified_at = Column(DateTime(timezone=True))
    verification_status_updated_at = Column(DateTime(timezone=True))
    current_verification_run_id = Column(String(36))
    persons = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), nullable=False)


class VendorDocumentRow(Base):
    __tablename__ = "vendor_documents"
    __table_args__ = (
        Index("ix_vendor_documents_vendor_type", "vendor_id", "type"),
        {"schema": SCHEMA},
    )

    id = Column(String(36), primary_key=True)
    vendor_id = Column(String(36), ForeignKey(f"{SCHEMA}.vendors.id"), nullable=False)
    type = Column(String(32), nullable=False)
    status = Column(String(16), nullable=False)
    issue_date = Column(DateTime(timezone=True))
    expiration_date = Column(DateTime(timezone=True))
    file_metadata = Column(JSON)
    created_at = Column(DateTime(timezone=True), nullable=False)


class VerificationRunRow(Base):
    """One verification run with its embedded checklist."""

    __tablename__ = "verification_runs"
    __table_args__ = (
        Index("ix_verification_runs_vendor_started", "vendor_id", "started_at"),
        Index("ix_verification_runs_status_started", "status", "started_at"),
        CheckConstraint(
            "completion_percentage >= 0 AND completion_percentage <= 100",
            name="check_completion_percentage",
        ),
        {"schema": SCHEMA},
    )

    id = Column(String(36), primary_key=True)
    vendor_id = Column(String(36), nullable=False)
    tenant_id = Column(String(36), nullable=False)
    triggered_by = Column(String(32), nullable=False)
    triggered_by_user_id = Column(String(36))
    status = Column(String(16), nullable=False)
    checklist = Column(JSON, nullable=False, default=dict)
    # Denormalized for reporting queries
    completion_percentage = Column(Integer, nullable=False, default=0)
    outcome = Column(String(16))
    outcome_reason = Column(Text)
    validation_errors = Column(JSON, nullable=False, default=list)
    started_at = Column(DateTime(timezone=True), nullable=False)
    completed_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), nullable=False)


class RegUpdateLogRow(Base):
    __tablename__ = "reg_update_logs"
    __table_args__ = (
        Index("ix_reg_update_logs_jurisdiction_detected", "jurisdiction_id", "detected_at"),
        Index("ix_reg_update_logs_processed", "processed_at"),
        {"schema": SCHEMA},
    )

    id = Column(String(36), primary_key=True)
    jurisdiction_id = Column(
        String(36), ForeignKey(f"{SCHEMA}.jurisdictions.id"), nullable=False
    )
    update_type = Column(String(32), nullable=False)
    affected_requirement_ids = Column(JSON, nullable=False, default=list)
    diff_summary = Column(Text, nullable=False, default="")
    source = Column(String(32), nullable=False)
    affected_vendor_count = Column(Integer, nullable=False, default=0)
    requires_reverification = Column(Boolean, nullable=False, default=False)
    urgency = Column(String(16), nullable=False)
    detected_at = Column(DateTime(timezone=True), nullable=False)
    processed_at = Column(DateTime(timezone=True))


__all__ = [
    "SCHEMA",
    "JurisdictionRow",
    "RequirementRow",
    "KitchenRow",
    "VendorRow",
    "VendorDocumentRow",
    "VerificationRunRow",
    "RegUpdateLogRow",
]
