"""
Error Taxonomy
==============

Exception classes raised by the verification engine.

- NotFoundError: absent or cross-tenant references
- DataIntegrityError: corrupt reference data, fatal to a run
- EvaluationTimeoutError: run exceeded its execution budget
- RetryableError: transient faults the job queue may retry

Version: 0.1.0
"""

from typing import Any


class ComplianceError(Exception):
    """Base exception for all verification engine errors."""

    retryable = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def __str__(self) -> str:
        if self.error_code:
            return f"[{self.error_code}] {self.message}"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """Serialize for logs and API error bodies."""
        return {
            "error": self.error_code or self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class NotFoundError(ComplianceError):
    """
    A referenced record does not exist or is not visible to the caller.

    Cross-tenant lookups raise this too, with the same message, so callers
    cannot discover records owned by other tenants.
    """

    def __init__(self, resource: str, identifier: str | None = None, **kwargs: Any):
        super().__init__(f"{resource} not found", error_code="NOT_FOUND", **kwargs)
        self.resource = resource
        self.identifier = identifier
        self.details.update({"resource": resource})


class DataIntegrityError(ComplianceError):
    """Stored reference data violates an invariant (dangling reference, cycle)."""

    def __init__(self, message: str, **kwargs: Any):
        super().__init__(message, error_code="DATA_INTEGRITY", **kwargs)


class EvaluationTimeoutError(ComplianceError):
    """A verification run exceeded its execution budget."""

    def __init__(self, timeout_seconds: float, **kwargs: Any):
        super().__init__(
            f"Verification exceeded its {timeout_seconds:g}s execution budget",
            error_code="EVALUATION_TIMEOUT",
            **kwargs,
        )
        self.timeout_seconds = timeout_seconds
        self.details.update({"timeout_seconds": timeout_seconds})


class ValidationError(ComplianceError):
    """A write was rejected because it would break a domain invariant."""

    def __init__(self, message: str, field: str | None = None, **kwargs: Any):
        kwargs.setdefault("error_code", "VALIDATION")
        super().__init__(message, **kwargs)
        self.field = field
        if field:
            self.details.update({"field": field})


class HierarchyError(ValidationError):
    """A jurisdiction registration would break the hierarchy."""

    def __init__(self, message: str, **kwargs: Any):
        super().__init__(message, error_code="HIERARCHY", **kwargs)


class CatalogConflictError(ValidationError):
    """Two versions of the same requirement would be active at once."""

    def __init__(self, message: str, conflicting_id: str | None = None, **kwargs: Any):
        super().__init__(message, error_code="CATALOG_CONFLICT", **kwargs)
        self.conflicting_id = conflicting_id
        self.details.update({"conflicting_id": conflicting_id})


class RunStateError(ComplianceError):
    """A verification run transition was attempted from a terminal state."""

    def __init__(self, run_id: str, status: str, **kwargs: Any):
        super().__init__(
            f"Verification run {run_id} is already {status}",
            error_code="RUN_STATE",
            **kwargs,
        )
        self.run_id = run_id
        self.status = status


class RetryableError(ComplianceError):
    """Transient failure; the operation is safe to retry."""

    retryable = True


class DownstreamUnavailableError(RetryableError):
    """Catalog or document store temporarily unreachable."""

    def __init__(self, message: str, service: str | None = None, **kwargs: Any):
        super().__init__(message, error_code="DOWNSTREAM_UNAVAILABLE", **kwargs)
        self.service = service
        self.details.update({"service": service})


class VendorBusyError(RetryableError):
    """Another verification run holds the vendor's lock."""

    def __init__(self, vendor_id: str, **kwargs: Any):
        super().__init__(
            "Another verification run for this vendor is in progress",
            error_code="VENDOR_BUSY",
            **kwargs,
        )
        self.vendor_id = vendor_id
