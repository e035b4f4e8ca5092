"""
Bill ingestion orchestration.

Drives the enabled sources one after another in priority order:
fetch -> normalize -> classify -> upsert, with a fixed pause between
sources. A failing source never stops the others; the run's exit code is
non-zero when at least one source failed outright.

Responsibility: Sequence sources, aggregate statistics, write import logs
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Awaitable, Callable, Dict, Iterable, List, Optional, Sequence
import logging

from sqlalchemy.exc import InterfaceError, OperationalError

from .status_lifecycle import StatusLifecycleJob
from ..adapters.base_adapter import BaseAdapter
from ..config import ImportConfig, SourceConfig
from ..db.repositories import ImportLogRepository
from ..db.session import Database
from ..models.upsert import UpsertAction

if TYPE_CHECKING:
    from ..services.bill_upsert_service import BillUpsertService

logger = logging.getLogger(__name__)

AdapterFactory = Callable[[SourceConfig], BaseAdapter]

STATUS_SUCCESS = "success"
STATUS_PARTIAL = "partial"
STATUS_FAILED = "failed"

MAX_ERROR_DETAILS = 20


@dataclass(slots=True)
class SourceRunResult:
    """Statistics for one source in one run"""

    source: str
    status: str = STATUS_SUCCESS
    fetched: int = 0
    new: int = 0
    updated: int = 0
    skipped: int = 0
    errors: int = 0
    error_details: List[str] = field(default_factory=list)
    execution_time: float = 0.0
    endpoint: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.status == STATUS_FAILED

    def record_error(self, message: str) -> None:
        self.errors += 1
        if len(self.error_details) < MAX_ERROR_DETAILS:
            self.error_details.append(message)


@dataclass(slots=True)
class IngestionRunReport:
    """Outcome of one full ingestion run"""

    started_at: datetime
    finished_at: Optional[datetime] = None
    results: List[SourceRunResult] = field(default_factory=list)
    lifecycle: Dict[str, int] = field(default_factory=dict)

    @property
    def exit_code(self) -> int:
        return 1 if any(result.failed for result in self.results) else 0

    def totals(self) -> Dict[str, int]:
        return {
            "sources_run": len(self.results),
            "sources_failed": sum(1 for r in self.results if r.failed),
            "new": sum(r.new for r in self.results),
            "updated": sum(r.updated for r in self.results),
            "skipped": sum(r.skipped for r in self.results),
            "errors": sum(r.errors for r in self.results),
        }


class IngestionOrchestrator:
    """
    Sequential multi-source ingestion.

    Example:
        orchestrator = IngestionOrchestrator(
            sources=settings.enabled_sources(),
            import_config=settings.imports,
            db=db,
            upsert_service=upsert_service,
            adapter_factory=lambda source: build_adapter(source, client, settings.imports),
            lifecycle_job=StatusLifecycleJob(db, settings.imports.lookahead_days),
        )
        report = await orchestrator.run()
        sys.exit(report.exit_code)
    """

    def __init__(
        self,
        sources: Sequence[SourceConfig],
        import_config: ImportConfig,
        db: Database,
        upsert_service: "BillUpsertService",
        adapter_factory: AdapterFactory,
        lifecycle_job: Optional[StatusLifecycleJob] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        """
        Initialize orchestrator.

        Args:
            sources: Immutable source table (disabled sources are ignored)
            import_config: Import settings
            db: Database manager (import logs)
            upsert_service: Upsert engine with its publish strategy
            adapter_factory: Builds the adapter for a source (KeyError when unknown)
            lifecycle_job: Status job run before fetching
            sleep: Awaitable sleep between sources (tests pass a no-op)
        """
        self.sources = tuple(sources)
        self.import_config = import_config
        self.db = db
        self.upsert_service = upsert_service
        self.adapter_factory = adapter_factory
        self.lifecycle_job = lifecycle_job
        self._sleep = sleep or asyncio.sleep

    def select_sources(self, only: Optional[Iterable[str]] = None) -> List[SourceConfig]:
        """Enabled sources, priority 1 first, optionally restricted to some keys"""
        selected = [source for source in self.sources if source.enabled]
        if only is not None:
            wanted = set(only)
            unknown = wanted - {source.key for source in self.sources}
            if unknown:
                logger.warning(f"Ignoring unknown sources: {', '.join(sorted(unknown))}")
            selected = [source for source in selected if source.key in wanted]
        return sorted(selected, key=lambda source: source.priority)

    async def run(self, only: Optional[Iterable[str]] = None) -> IngestionRunReport:
        """
        Run one ingestion cycle.

        Args:
            only: Restrict the run to these source keys

        Returns:
            IngestionRunReport with one SourceRunResult per source
        """
        report = IngestionRunReport(started_at=datetime.utcnow())
        logger.info("===== Starting bill import =====")

        if self.lifecycle_job is not None:
            report.lifecycle = await self.lifecycle_job.run()

        sources = self.select_sources(only)
        if not sources:
            logger.warning("No enabled sources found")

        for index, source in enumerate(sources):
            logger.info(f"--- Processing source: {source.name} (priority {source.priority}) ---")
            result = await self._run_source(source)
            report.results.append(result)
            await self._write_log(result)

            logger.info(
                f"{source.key}: {result.status.upper()} - new={result.new}, "
                f"updated={result.updated}, skipped={result.skipped}, "
                f"errors={result.errors} ({result.execution_time:.2f}s)"
            )

            if index < len(sources) - 1 and self.import_config.delay_between_sources_seconds > 0:
                await self._sleep(self.import_config.delay_between_sources_seconds)

        report.finished_at = datetime.utcnow()
        totals = report.totals()
        logger.info(
            f"===== Import completed: {totals['new']} new, {totals['updated']} updated, "
            f"{totals['skipped']} skipped, {totals['errors']} errors, "
            f"{totals['sources_failed']} failed sources ====="
        )
        return report

    async def _run_source(self, source: SourceConfig) -> SourceRunResult:
        start = datetime.utcnow()
        result = SourceRunResult(source=source.key)

        try:
            adapter = self.adapter_factory(source)
        except KeyError:
            logger.error(f"No adapter registered for source '{source.key}'")
            result.status = STATUS_FAILED
            result.record_error(f"No adapter registered for source '{source.key}'")
            result.execution_time = (datetime.utcnow() - start).total_seconds()
            return result

        try:
            response = await adapter.fetch()
            result.endpoint = response.endpoint
            result.fetched = response.metrics.records_attempted

            if response.failed:
                result.status = STATUS_FAILED
                for error in response.errors:
                    result.record_error(f"{error.error_type}: {error.message}")
            else:
                result.skipped = response.metrics.records_skipped
                for error in response.errors:
                    result.record_error(f"{error.error_type}: {error.message}")

                for draft in response.data or []:
                    outcome = await self.upsert_service.upsert(draft)
                    if outcome.error:
                        result.record_error(f"{draft.external_id}: {outcome.error}")
                    elif outcome.action == UpsertAction.INSERTED:
                        result.new += 1
                    elif outcome.action == UpsertAction.UPDATED:
                        result.updated += 1
                    else:
                        result.skipped += 1

                result.status = STATUS_PARTIAL if result.errors else STATUS_SUCCESS

        except (OperationalError, InterfaceError):
            raise
        except Exception as e:
            logger.error(f"Source {source.key} failed: {e}", exc_info=True)
            result.status = STATUS_FAILED
            result.record_error(f"{type(e).__name__}: {e}")

        result.execution_time = (datetime.utcnow() - start).total_seconds()
        return result

    async def _write_log(self, result: SourceRunResult) -> None:
        async with self.db.session() as session:
            await ImportLogRepository(session).create_log(
                source=result.source,
                status=result.status,
                fetched=result.fetched,
                new=result.new,
                updated=result.updated,
                skipped=result.skipped,
                errors=result.errors,
                execution_time=round(result.execution_time, 3),
                error_details=result.error_details,
            )
