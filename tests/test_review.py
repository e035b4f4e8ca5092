from datetime import datetime, timedelta

import pytest

from constituant.db.repositories import BillRepository, PendingBillRepository
from constituant.services.bill_upsert_service import BillUpsertService, ReviewQueueStrategy
from constituant.services.review_service import ReviewError, ReviewService

from helpers import add_bill, make_classifier, make_draft


async def _queue(database, **fields) -> int:
    service = BillUpsertService(database, make_classifier(), ReviewQueueStrategy())
    outcome = await service.upsert(make_draft(**fields))
    return outcome.record_id


async def test_fetch_then_approve_publishes_upcoming_bill(database) -> None:
    vote_at = (datetime.utcnow() + timedelta(days=10)).replace(microsecond=0)
    pending_id = await _queue(database, vote_datetime=vote_at)

    async with database.session() as session:
        bill = await ReviewService(session).approve(pending_id)
        bill_id = bill.id

    async with database.session() as session:
        bill = await BillRepository(session).get_by_id(bill_id)
        pending = await PendingBillRepository(session).get_by_id(pending_id)

    assert bill_id.startswith("fr-loi-test-")
    assert bill.status == "upcoming"
    assert bill.vote_datetime == vote_at
    assert bill.theme == "Environnement & Énergie"
    assert bill.ai_concerne == ["propriétaires", "locataires"]
    assert bill.source == "nosdeputes"
    assert bill.external_id == "42"
    assert pending.status == "approved"
    assert pending.bill_id == bill_id
    assert pending.reviewed_at is not None


async def test_approve_without_vote_date_uses_default_window(database) -> None:
    pending_id = await _queue(database)
    now = datetime(2025, 3, 1, 12, 0)

    async with database.session() as session:
        bill = await ReviewService(session).approve(pending_id, now=now)

    assert bill.vote_datetime == now + timedelta(days=7)


async def test_edit_approve_applies_overrides(database) -> None:
    pending_id = await _queue(database)
    edits = {
        "id": "fr-loi-renovation-2025",
        "title": "Loi rénovation",
        "summary": "Résumé revu",
        "vote_datetime": "2025-06-01 15:00:00",
        "level": "france",
    }

    async with database.session() as session:
        bill = await ReviewService(session).edit_approve(pending_id, edits)

    assert bill.id == "fr-loi-renovation-2025"
    assert bill.title == "Loi rénovation"
    assert bill.vote_datetime == datetime(2025, 6, 1, 15, 0)


async def test_edit_approve_requires_fields(database) -> None:
    pending_id = await _queue(database)

    async with database.session() as session:
        with pytest.raises(ReviewError) as excinfo:
            await ReviewService(session).edit_approve(pending_id, {"title": "Loi"})

    assert excinfo.value.category == "validation_error"
    assert excinfo.value.status_code == 400
    assert "summary" in excinfo.value.message


async def test_approve_rejects_bad_overrides(database) -> None:
    pending_id = await _queue(database)

    async with database.session() as session:
        service = ReviewService(session)
        with pytest.raises(ReviewError):
            await service.approve(pending_id, {"level": "region"})
        with pytest.raises(ReviewError):
            await service.approve(pending_id, {"vote_datetime": "bientôt"})
        with pytest.raises(ReviewError):
            await service.approve(pending_id, {"status": "completed"})


async def test_approve_with_taken_id_is_a_conflict(database) -> None:
    pending_id = await _queue(database)
    async with database.session() as session:
        await add_bill(session, bill_id="fr-loi-existante-2025")

    async with database.session() as session:
        with pytest.raises(ReviewError) as excinfo:
            await ReviewService(session).approve(pending_id, {"id": "fr-loi-existante-2025"})

    assert excinfo.value.category == "conflict"
    assert excinfo.value.status_code == 409


async def test_reject_records_notes_and_is_terminal(database) -> None:
    pending_id = await _queue(database)

    async with database.session() as session:
        pending = await ReviewService(session).reject(pending_id, notes="Hors sujet")
        assert pending.status == "rejected"
        assert pending.notes == "Hors sujet"

    async with database.session() as session:
        service = ReviewService(session)
        with pytest.raises(ReviewError) as excinfo:
            await service.approve(pending_id)
        assert excinfo.value.category == "invalid_state"

        with pytest.raises(ReviewError):
            await service.reject(pending_id)


async def test_unknown_pending_id_is_not_found(database) -> None:
    async with database.session() as session:
        with pytest.raises(ReviewError) as excinfo:
            await ReviewService(session).reject(999)

    assert excinfo.value.status_code == 404


async def test_list_pending_filters_by_status(database) -> None:
    first = await _queue(database)
    await _queue(database, external_id="43")

    async with database.session() as session:
        await ReviewService(session).reject(first)

    async with database.session() as session:
        service = ReviewService(session)
        pending = await service.list_pending()
        rejected = await service.list_pending("rejected")

    assert [row.external_id for row in pending] == ["43"]
    assert [row.id for row in rejected] == [first]
