from datetime import datetime, timedelta

from constituant.db.repositories import BillRepository
from constituant.models.bill import BillStatus
from constituant.orchestration.status_lifecycle import StatusLifecycleJob, determine_status

from helpers import add_bill

NOW = datetime(2025, 3, 10, 12, 0)


def test_determine_status_windows() -> None:
    assert determine_status(NOW - timedelta(days=2), NOW) == BillStatus.COMPLETED
    assert determine_status(NOW + timedelta(days=3), NOW) == BillStatus.VOTING_NOW
    assert determine_status(NOW + timedelta(days=7), NOW) == BillStatus.VOTING_NOW
    assert determine_status(NOW + timedelta(days=30), NOW) == BillStatus.UPCOMING


def test_determine_status_never_reopens_completed() -> None:
    later = NOW + timedelta(days=30)
    assert determine_status(later, NOW, current=BillStatus.COMPLETED) == BillStatus.COMPLETED


def test_determine_status_without_date_keeps_current() -> None:
    assert determine_status(None, NOW, current=BillStatus.VOTING_NOW) == BillStatus.VOTING_NOW
    assert determine_status(None, NOW) == BillStatus.UPCOMING


async def test_lifecycle_job_moves_bills(database) -> None:
    async with database.session() as session:
        await add_bill(session, "fr-passe-2025", vote_datetime=NOW - timedelta(days=2))
        await add_bill(session, "fr-bientot-2025", vote_datetime=NOW + timedelta(days=3))
        await add_bill(session, "fr-plus-tard-2025", vote_datetime=NOW + timedelta(days=30))
        await add_bill(session, "fr-reporte-2025", vote_datetime=NOW + timedelta(days=30), status="voting_now")
        await add_bill(session, "fr-clos-2025", vote_datetime=NOW + timedelta(days=30), status="completed")
        await add_bill(session, "fr-sans-date-2025", vote_datetime=None)

    job = StatusLifecycleJob(database, lookahead_days=7)
    counts = await job.run(now=NOW)

    assert counts == {"completed": 1, "voting_now": 1, "upcoming": 1}

    async with database.session() as session:
        repo = BillRepository(session)
        statuses = {
            bill_id: (await repo.get_by_id(bill_id)).status
            for bill_id in (
                "fr-passe-2025", "fr-bientot-2025", "fr-plus-tard-2025",
                "fr-reporte-2025", "fr-clos-2025", "fr-sans-date-2025",
            )
        }

    assert statuses == {
        "fr-passe-2025": "completed",
        "fr-bientot-2025": "voting_now",
        "fr-plus-tard-2025": "upcoming",
        "fr-reporte-2025": "upcoming",
        "fr-clos-2025": "completed",
        "fr-sans-date-2025": "upcoming",
    }


async def test_lifecycle_job_is_idempotent(database) -> None:
    async with database.session() as session:
        await add_bill(session, vote_datetime=NOW - timedelta(days=1))

    job = StatusLifecycleJob(database)
    await job.run(now=NOW)
    second = await job.run(now=NOW)

    assert sum(second.values()) == 0
