import httpx

from constituant.adapters import build_adapter
from constituant.config import ImportConfig
from constituant.db.repositories import ImportLogRepository, PendingBillRepository
from constituant.orchestration.ingestion_pipeline import IngestionOrchestrator
from constituant.orchestration.status_lifecycle import StatusLifecycleJob
from constituant.services.bill_upsert_service import BillUpsertService, ReviewQueueStrategy

from helpers import json_response, make_classifier, make_client, make_source, no_sleep


def _handler(request: httpx.Request) -> httpx.Response:
    if request.url.host == "www.nosdeputes.fr":
        if request.url.path == "/dossiers/date/json":
            return json_response({"dossiers_legislatif": [
                {"dossier": {"id": "d1", "titre": "Loi un", "resume": "Premier texte."}},
                {"dossier": {"id": "d2", "titre": "Loi deux", "resume": "Second texte."}},
            ]})
        return json_response({"scrutins": []})
    return httpx.Response(500)


def _orchestrator(database, import_config, sources, sleep=no_sleep, lifecycle_job=None):
    client = make_client(_handler)
    return IngestionOrchestrator(
        sources=sources,
        import_config=import_config,
        db=database,
        upsert_service=BillUpsertService(database, make_classifier(), ReviewQueueStrategy()),
        adapter_factory=lambda source: build_adapter(source, client, import_config, sleep=no_sleep),
        lifecycle_job=lifecycle_job,
        sleep=sleep,
    )


async def test_run_processes_sources_in_priority_order(database, import_config) -> None:
    sources = [make_source("lafabrique"), make_source("nosdeputes")]
    report = await _orchestrator(database, import_config, sources).run()

    assert [result.source for result in report.results] == ["nosdeputes", "lafabrique"]

    nosdeputes, lafabrique = report.results
    assert nosdeputes.status == "success"
    assert nosdeputes.new == 2
    assert nosdeputes.endpoint == "dossiers"
    assert lafabrique.status == "failed"
    assert lafabrique.errors == 1
    assert report.exit_code == 1
    assert report.totals()["sources_failed"] == 1

    async with database.session() as session:
        logs = await ImportLogRepository(session).get_recent_logs()
        pending = await PendingBillRepository(session).list_by_status()

    assert sorted(log.source for log in logs) == ["lafabrique", "nosdeputes"]
    assert {log.source: log.status for log in logs} == {"nosdeputes": "success", "lafabrique": "failed"}
    assert sorted(row.external_id for row in pending) == ["d1", "d2"]


async def test_second_run_updates_instead_of_inserting(database, import_config) -> None:
    orchestrator = _orchestrator(database, import_config, [make_source("nosdeputes")])

    await orchestrator.run()
    report = await orchestrator.run()

    assert report.results[0].new == 0
    assert report.results[0].updated == 2
    assert report.exit_code == 0


async def test_unknown_source_key_fails_without_stopping_run(database, import_config) -> None:
    unknown = make_source("lafabrique").model_copy(update={"key": "senat", "priority": 0})
    report = await _orchestrator(database, import_config, [unknown, make_source("nosdeputes")]).run()

    assert [result.source for result in report.results] == ["senat", "nosdeputes"]
    assert report.results[0].failed
    assert "No adapter registered" in report.results[0].error_details[0]
    assert report.results[1].new == 2


async def test_disabled_and_filtered_sources(database, import_config) -> None:
    sources = [make_source("nosdeputes"), make_source("lafabrique", enabled=False), make_source("eu_parliament")]
    orchestrator = _orchestrator(database, import_config, sources)

    assert [source.key for source in orchestrator.select_sources()] == ["nosdeputes", "eu_parliament"]
    assert [source.key for source in orchestrator.select_sources(["eu_parliament", "senat"])] == ["eu_parliament"]

    report = await orchestrator.run(only=["nosdeputes"])
    assert [result.source for result in report.results] == ["nosdeputes"]


async def test_pause_between_sources(database, recording_sleep, sleep_calls) -> None:
    config = ImportConfig(delay_between_sources_seconds=2.0)
    sources = [make_source("nosdeputes"), make_source("lafabrique"), make_source("eu_parliament")]

    await _orchestrator(database, config, sources, sleep=recording_sleep).run()

    assert sleep_calls == [2.0, 2.0]


async def test_lifecycle_runs_before_fetching(database, import_config) -> None:
    job = StatusLifecycleJob(database)
    report = await _orchestrator(database, import_config, [], lifecycle_job=job).run()

    assert report.lifecycle == {"completed": 0, "voting_now": 0, "upcoming": 0}
    assert report.results == []
    assert report.exit_code == 0
