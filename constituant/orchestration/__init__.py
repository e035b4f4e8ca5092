"""
Orchestration package for Constituant.

This package contains the ingestion orchestrator that drives the
source adapters, and the status lifecycle job.
"""

from .status_lifecycle import StatusLifecycleJob, determine_status
from .ingestion_pipeline import IngestionOrchestrator, IngestionRunReport, SourceRunResult

__all__ = [
    "IngestionOrchestrator",
    "IngestionRunReport",
    "SourceRunResult",
    "StatusLifecycleJob",
    "determine_status",
]
