"""
Health Department Models
========================

The local health department responsible for a jurisdiction: who vendors
contact and where inspections are looked up.

Version: 0.1.0
"""

import re
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, HttpUrl, field_validator

from shared.models.common import ensure_utc, new_id, utcnow
from shared.models.vendor import Address


EMAIL_PATTERN = re.compile(r"^[\w.-]+@([\w-]+\.)+[\w-]{2,}$")
PHONE_PATTERN = re.compile(r"^\+?[1-9]\d{1,14}$")


class ApiAuthType(str, Enum):
    """How the department's inspection API authenticates callers."""

    API_KEY = "api_key"
    OAUTH = "oauth"
    BASIC_AUTH = "basic_auth"
    NONE = "none"


class DepartmentContact(BaseModel):
    email: str
    phone: str = Field(..., description="E.164 digits, optional leading +")
    address: Address | None = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        v = v.strip().lower()
        if not EMAIL_PATTERN.match(v):
            raise ValueError(f"Invalid email address: {v!r}")
        return v

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v: str) -> str:
        if not PHONE_PATTERN.match(v):
            raise ValueError(f"Invalid phone number: {v!r}")
        return v


class DepartmentApi(BaseModel):
    """Connection details for departments that expose an inspection API.

    Credentials are kept in the secret store, never on this record.
    """

    endpoint: str | None = None
    auth_type: ApiAuthType = ApiAuthType.NONE


class HealthDepartment(BaseModel):
    """A local health department; at most one per jurisdiction."""

    id: str = Field(default_factory=new_id)
    jurisdiction_id: str
    name: str = Field(..., min_length=1)
    website: HttpUrl | None = None
    contact: DepartmentContact
    inspection_portal_url: HttpUrl | None = None
    api_available: bool = False
    api_config: DepartmentApi | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return v.strip()

    @field_validator("created_at", "updated_at")
    @classmethod
    def normalize_timestamps(cls, v: datetime) -> datetime:
        return ensure_utc(v)
