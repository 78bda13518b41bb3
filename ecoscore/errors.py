"""
Eco-Score Exception Hierarchy

Typed errors raised by the scoring, winner and archival services.
Each error carries a machine-readable code, a severity and a context
dict so operators can reconcile storage problems by hand.
"""

from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorSeverity(Enum):
    """Error severity levels for categorizing exceptions."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class EcoScoreError(Exception):
    """
    Base exception class for all Eco-Score errors.

    Attributes
    ----------
    message : str
        Human-readable error message
    error_code : str
        Machine-readable error code for categorization
    severity : ErrorSeverity
        Error severity level
    context : Dict[str, Any]
        Additional error context (ids, counts)
    cause : Optional[Exception]
        Original exception that caused this error
    """

    def __init__(
        self,
        message: str,
        error_code: str,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.severity = severity
        self.context = dict(context or {})
        self.cause = cause

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for API responses and log records."""
        return {
            "error": self.error_code,
            "message": self.message,
            "severity": self.severity.value,
            "context": self.context,
        }


class ValidationError(EcoScoreError):
    """Input rejected before any write. Names the offending field."""

    def __init__(self, field: str, message: str, value: Any = None) -> None:
        super().__init__(
            message,
            error_code="validation_error",
            severity=ErrorSeverity.LOW,
            context={"field": field, "value": value},
        )
        self.field = field


class NotFoundError(EcoScoreError):
    """Operation targeted a winner or evaluation id that does not exist."""

    def __init__(self, resource: str, resource_id: Any) -> None:
        super().__init__(
            f"{resource} not found: {resource_id}",
            error_code="not_found",
            severity=ErrorSeverity.LOW,
            context={"resource": resource, "resource_id": resource_id},
        )
        self.resource = resource
        self.resource_id = resource_id


class StorageError(EcoScoreError):
    """Underlying store unavailable or a write failed."""

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(
            message,
            error_code="storage_error",
            severity=ErrorSeverity.HIGH,
            context=context,
            cause=cause,
        )


class ConsistencyError(EcoScoreError):
    """
    Archive insert succeeded but the active store was not purged.

    Requires manual reconciliation: the listed evaluations exist in both
    the archive and the active store.
    """

    def __init__(
        self,
        message: str,
        archived_count: int,
        purged_count: int,
        evaluation_ids: List[str],
        archive_run_id: Optional[int] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(
            message,
            error_code="consistency_error",
            severity=ErrorSeverity.CRITICAL,
            context={
                "archived_count": archived_count,
                "purged_count": purged_count,
                "evaluation_ids": list(evaluation_ids),
                "archive_run_id": archive_run_id,
            },
            cause=cause,
        )
        self.archived_count = archived_count
        self.purged_count = purged_count
        self.evaluation_ids = list(evaluation_ids)
        self.archive_run_id = archive_run_id
