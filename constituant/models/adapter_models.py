"""
Adapter response models.

Defines unified response structures for all bill source adapters.
These models ensure consistent error handling, metrics tracking,
and data normalization across different data sources.

Responsibility: Data transfer objects for adapter operations
"""

from datetime import datetime
from enum import Enum
from typing import Generic, TypeVar, Optional, List, Dict, Any

from pydantic import BaseModel, Field


class AdapterStatus(str, Enum):
    """
    Status of an adapter operation.

    Used to quickly determine if fallback or error handling is needed.
    """
    SUCCESS = "success"
    PARTIAL_SUCCESS = "partial_success"  # Some records failed, some succeeded
    FAILURE = "failure"
    SOURCE_UNAVAILABLE = "source_unavailable"


class RawRecord(BaseModel):
    """
    One loosely-typed item as received from a source.

    `kind` tells the Normalizer which field map applies
    (e.g. "dossier", "scrutin", "rss_item", "csv_row", "document").
    """
    source: str
    kind: str
    payload: Dict[str, Any]
    endpoint: Optional[str] = None


class AdapterError(BaseModel):
    """
    Structured error information from adapter operations.

    Captures context needed for debugging and import logs.
    """
    timestamp: datetime = Field(description="When the error occurred (UTC)")
    error_type: str = Field(description="Exception class name or error category")
    message: str = Field(description="Human-readable error message")
    context: Dict[str, Any] = Field(
        default_factory=dict,
        description="Additional context (URL, record ID, etc.)"
    )
    retryable: bool = Field(
        default=False,
        description="Whether this error can be retried"
    )


class AdapterMetrics(BaseModel):
    """
    Operational metrics for adapter execution.
    """
    records_attempted: int = Field(
        ge=0,
        description="Raw records received after source filters and cap"
    )
    records_succeeded: int = Field(
        ge=0,
        description="Records successfully normalized"
    )
    records_skipped: int = Field(
        ge=0,
        default=0,
        description="Records dropped for lacking a usable title or id, or duplicated"
    )
    records_failed: int = Field(
        ge=0,
        description="Records that failed during normalization"
    )
    duration_seconds: float = Field(
        ge=0.0,
        description="Total execution time in seconds"
    )
    fallbacks_used: int = Field(
        ge=0,
        default=0,
        description="Number of endpoints that failed before one succeeded"
    )


T = TypeVar('T')


class AdapterResponse(BaseModel, Generic[T]):
    """
    Unified response wrapper for all adapter operations.

    Generic type T represents the normalized data model (BillDraft).

    Responsibility: Standard response container with status, data, errors, metrics
    """
    status: AdapterStatus = Field(description="Operation status")
    data: Optional[List[T]] = Field(
        default=None,
        description="List of successfully normalized records"
    )
    errors: List[AdapterError] = Field(
        default_factory=list,
        description="List of errors encountered during operation"
    )
    metrics: AdapterMetrics = Field(description="Operation performance metrics")
    source: str = Field(description="Adapter/source identifier")
    endpoint: Optional[str] = Field(
        default=None,
        description="Endpoint that finally produced the records"
    )
    fetch_timestamp: datetime = Field(description="When data was fetched (UTC)")

    @property
    def failed(self) -> bool:
        return self.status in (AdapterStatus.FAILURE, AdapterStatus.SOURCE_UNAVAILABLE)
