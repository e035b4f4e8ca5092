"""
Prefect flows for Constituant orchestration.

This package contains flow definitions for:
- Scheduled bill ingestion (status update + import)
- Catch-up re-classification
- Schema migrations

Responsibility: Define orchestration workflows using Prefect
"""

from .ingestion_flow import ingestion_flow, reclassification_flow
from .migration_flow import migration_flow

__all__ = [
    "ingestion_flow",
    "reclassification_flow",
    "migration_flow",
]
