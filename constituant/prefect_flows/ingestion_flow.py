"""
Prefect flows for the Constituant bill ingestion pipeline.

Defines flows for:
- Updating bill statuses and importing bills from every enabled source
- Re-classifying bills left under the sentinel theme

Responsibility: Orchestrate periodic bill imports
"""

from typing import Any, Dict, List, Optional

from prefect import flow, task, get_run_logger

from ..bootstrap import build_components
from ..config import ImportMode, settings
from ..db.session import Database
from ..orchestration import StatusLifecycleJob


@task(
    name="update_bill_statuses",
    description="Move bills through upcoming / voting_now / completed",
    retries=2,
    retry_delay_seconds=30,
)
async def update_statuses_task() -> Dict[str, int]:
    """
    Run the status lifecycle job once.

    Returns:
        Number of bills moved into each status
    """
    logger = get_run_logger()

    db = Database(settings.db)
    await db.initialize()
    try:
        counts = await StatusLifecycleJob(db, settings.imports.lookahead_days).run()
        logger.info(f"Status updates: {counts}")
        return counts
    finally:
        await db.close()


@task(
    name="run_bill_ingestion",
    description="Fetch, classify and store bills from the enabled sources",
    retries=2,
    retry_delay_seconds=60,
)
async def run_ingestion_task(
    sources: Optional[List[str]] = None,
    mode: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Run one ingestion cycle.

    Args:
        sources: Restrict to these source keys (None for all enabled)
        mode: "review" or "direct" (None for the configured mode)

    Returns:
        Per-source statistics and the run exit code
    """
    logger = get_run_logger()

    db = Database(settings.db)
    await db.initialize()
    components = build_components(settings, db, mode=ImportMode(mode) if mode else None)
    # Statuses are updated by the flow's own task
    components.orchestrator.lifecycle_job = None

    try:
        report = await components.orchestrator.run(only=sources)
    finally:
        await components.close()
        await db.close()

    for result in report.results:
        log = logger.error if result.failed else logger.info
        log(
            f"{result.source}: {result.status} - new={result.new}, updated={result.updated}, "
            f"skipped={result.skipped}, errors={result.errors}"
        )

    return {
        "exit_code": report.exit_code,
        "totals": report.totals(),
        "sources": [
            {
                "source": result.source,
                "status": result.status,
                "new": result.new,
                "updated": result.updated,
                "skipped": result.skipped,
                "errors": result.errors,
                "error_details": result.error_details,
            }
            for result in report.results
        ],
    }


@task(
    name="reclassify_bills",
    description="Retry classification of uncategorized bills",
    retries=1,
    retry_delay_seconds=60,
)
async def reclassify_task(limit: int = 10, force: bool = False, published: bool = False) -> Dict[str, int]:
    db = Database(settings.db)
    await db.initialize()
    components = build_components(settings, db)
    try:
        if published:
            return await components.reclassifier.run_published(limit=limit)
        return await components.reclassifier.run(limit=limit, force=force)
    finally:
        await components.close()
        await db.close()


@flow(
    name="constituant-ingestion",
    description="Update bill statuses, then import bills from every enabled source",
    log_prints=True,
)
async def ingestion_flow(
    sources: Optional[List[str]] = None,
    mode: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Main scheduled flow.

    1. Updates bill statuses (past votes become completed)
    2. Fetches each enabled source in priority order
    3. Classifies and stores new bills (review queue or direct publish)
    4. Writes one import log per source
    """
    logger = get_run_logger()
    logger.info("Starting Constituant bill ingestion flow")

    lifecycle = await update_statuses_task()
    result = await run_ingestion_task(sources=sources, mode=mode)
    result["lifecycle"] = lifecycle

    totals = result["totals"]
    logger.info(
        f"Flow complete: {totals['new']} new, {totals['updated']} updated, "
        f"{totals['sources_failed']} failed sources"
    )
    return result


@flow(
    name="constituant-reclassification",
    description="Retry AI classification of bills still under the sentinel theme",
    log_prints=True,
)
async def reclassification_flow(limit: int = 10, force: bool = False, published: bool = False) -> Dict[str, int]:
    logger = get_run_logger()
    logger.info(f"Re-classifying up to {limit} bills (force={force}, published={published})")

    stats = await reclassify_task(limit=limit, force=force, published=published)

    logger.info(f"Re-classification complete: {stats}")
    return stats
