"""
Wiring of the ingestion pipeline from settings.

Entry points (CLI, Prefect flows) build their collaborators here so the
same source table, classifier and publish strategy are used everywhere.

Responsibility: Assemble pipeline components and configure logging
"""

from dataclasses import dataclass
from typing import Awaitable, Callable, Optional
import logging

from .adapters import build_adapter
from .config import ImportMode, Settings
from .db.session import Database
from .orchestration import IngestionOrchestrator, StatusLifecycleJob
from .services import (
    BillUpsertService,
    ClassificationService,
    DirectPublishStrategy,
    FullTextService,
    PublishStrategy,
    ReclassificationService,
    ReviewQueueStrategy,
)
from .utils.http_client import HttpFetchClient

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO", verbose: bool = False) -> None:
    """Root logging setup shared by every entry point"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


@dataclass
class PipelineComponents:
    """Collaborators of one ingestion process"""

    client: HttpFetchClient
    classifier: ClassificationService
    full_text: FullTextService
    upsert_service: BillUpsertService
    lifecycle_job: StatusLifecycleJob
    orchestrator: IngestionOrchestrator
    reclassifier: ReclassificationService

    async def close(self) -> None:
        await self.classifier.close()
        await self.client.close()


def build_strategy(settings: Settings, mode: Optional[ImportMode] = None) -> PublishStrategy:
    mode = mode or settings.imports.mode
    if mode == ImportMode.DIRECT:
        return DirectPublishStrategy(settings.imports)
    return ReviewQueueStrategy()


def build_components(
    settings: Settings,
    db: Database,
    mode: Optional[ImportMode] = None,
    sleep: Optional[Callable[[float], Awaitable[None]]] = None,
) -> PipelineComponents:
    """
    Build every pipeline collaborator from settings.

    Args:
        settings: Application settings
        db: Initialized database manager
        mode: Override of the configured import mode
        sleep: Awaitable sleep shared by throttles and delays
    """
    client = HttpFetchClient(sleep=sleep)
    classifier = ClassificationService(settings.classifier, sleep=sleep)
    full_text = FullTextService(
        client,
        max_chars=settings.imports.full_text_max_chars,
        timeout_seconds=settings.imports.full_text_timeout_seconds,
    )

    upsert_service = BillUpsertService(
        db,
        classifier,
        build_strategy(settings, mode),
        full_text=full_text if settings.imports.fetch_full_text else None,
    )
    lifecycle_job = StatusLifecycleJob(db, settings.imports.lookahead_days)

    orchestrator = IngestionOrchestrator(
        sources=settings.sources,
        import_config=settings.imports,
        db=db,
        upsert_service=upsert_service,
        adapter_factory=lambda source: build_adapter(source, client, settings.imports, sleep=sleep),
        lifecycle_job=lifecycle_job,
        sleep=sleep,
    )

    reclassifier = ReclassificationService(
        db,
        classifier,
        full_text=full_text,
        delay_seconds=settings.classifier.delay_between_calls_seconds,
        sleep=sleep,
    )

    return PipelineComponents(
        client=client,
        classifier=classifier,
        full_text=full_text,
        upsert_service=upsert_service,
        lifecycle_job=lifecycle_job,
        orchestrator=orchestrator,
        reclassifier=reclassifier,
    )
