"""
Repository for ImportLog database operations.

Import logs are append-only: one row per source per ingestion run,
used for monitoring pipeline health from the admin API.
"""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import ImportLogModel


class ImportLogRepository:
    """Repository for import log operations."""

    def __init__(self, session: AsyncSession):
        """
        Initialize repository with a database session.

        Args:
            session: Async database session
        """
        self.session = session

    async def create_log(
        self,
        source: str,
        status: str,
        fetched: int,
        new: int,
        updated: int,
        skipped: int,
        errors: int,
        execution_time: float,
        error_details: Optional[List[str]] = None,
    ) -> ImportLogModel:
        """
        Create a new import log entry.

        Args:
            source: Source key (e.g., "nosdeputes")
            status: Outcome of the run ("success", "partial", "failed")
            fetched: Number of drafts returned by the adapter
            new: Number of inserted records
            updated: Number of updated records
            skipped: Number of skipped records
            errors: Number of item or source errors
            execution_time: Duration of the source run in seconds
            error_details: Optional error messages

        Returns:
            Created ImportLogModel instance
        """
        log = ImportLogModel(
            source=source,
            status=status,
            fetched=fetched,
            new=new,
            updated=updated,
            skipped=skipped,
            errors=errors,
            error_details=error_details or None,
            execution_time=execution_time,
        )

        self.session.add(log)
        await self.session.flush()
        return log

    async def get_recent_logs(
        self,
        limit: int = 50,
        source: Optional[str] = None,
    ) -> List[ImportLogModel]:
        """
        Get most recent import logs.

        Args:
            limit: Maximum number of logs to return
            source: Optional source filter

        Returns:
            List of ImportLogModel instances, newest first
        """
        query = select(ImportLogModel)

        if source:
            query = query.where(ImportLogModel.source == source)

        query = query.order_by(ImportLogModel.created_at.desc(), ImportLogModel.id.desc()).limit(limit)

        result = await self.session.execute(query)
        return list(result.scalars().all())
