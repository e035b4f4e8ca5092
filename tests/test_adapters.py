from datetime import datetime, timedelta

import httpx
import pytest

from constituant.adapters import ADAPTERS, build_adapter
from constituant.adapters.eu_parliament import EUParliamentAdapter, is_amendment_only
from constituant.adapters.lafabrique import LaFabriqueAdapter, is_open_dossier
from constituant.adapters.nosdeputes import NosDeputesAdapter
from constituant.config import ImportConfig
from constituant.models.adapter_models import AdapterStatus

from helpers import json_response, make_client, make_source, no_sleep


def _recent(days: int = 1) -> str:
    return (datetime.utcnow() - timedelta(days=days)).strftime("%Y-%m-%d")


# NosDéputés

async def test_nosdeputes_primary_endpoint_and_scrutins() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/dossiers/date/json":
            return json_response({"dossiers_legislatif": [
                {"dossier": {"id": "d1", "titre": "Loi un"}},
                {"dossier": {"id": "d2", "titre": "Loi deux"}},
            ]})
        if request.url.path == "/17/scrutins/json":
            return json_response({"scrutins": [{"scrutin": {"numero": "10", "titre": "Vote solennel"}}]})
        return httpx.Response(404)

    adapter = NosDeputesAdapter(make_source("nosdeputes"), make_client(handler), sleep=no_sleep)
    response = await adapter.fetch()

    assert response.status == AdapterStatus.SUCCESS
    assert response.endpoint == "dossiers"
    assert [draft.external_id for draft in response.data] == ["d1", "d2", "scrutin-10"]
    assert response.metrics.records_attempted == 3


async def test_nosdeputes_falls_back_to_search() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/dossiers/date/json":
            return httpx.Response(503)
        if request.url.path == "/recherche/projets":
            return json_response({"resultats": [{"id": "s1", "titre": "Loi trouvée"}]})
        return json_response({"scrutins": []})

    adapter = NosDeputesAdapter(make_source("nosdeputes"), make_client(handler), sleep=no_sleep)
    response = await adapter.fetch()

    assert response.endpoint == "search"
    assert response.metrics.fallbacks_used == 1
    assert [draft.external_id for draft in response.data] == ["s1"]


async def test_nosdeputes_all_endpoints_down_is_a_failure() -> None:
    adapter = NosDeputesAdapter(
        make_source("nosdeputes"),
        make_client(lambda request: httpx.Response(500)),
        sleep=no_sleep,
    )
    response = await adapter.fetch()

    assert response.failed
    assert response.data is None
    assert "All endpoints failed" in response.errors[0].message


async def test_nosdeputes_scrutins_only_is_partial_success() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/17/scrutins/json":
            return json_response({"scrutins": [{"numero": "11", "titre": "Motion"}]})
        return httpx.Response(502)

    adapter = NosDeputesAdapter(make_source("nosdeputes"), make_client(handler), sleep=no_sleep)
    response = await adapter.fetch()

    assert response.status == AdapterStatus.PARTIAL_SUCCESS
    assert response.endpoint == "scrutins"
    assert [draft.external_id for draft in response.data] == ["scrutin-11"]


async def test_nosdeputes_duplicates_and_cap() -> None:
    dossiers = [{"id": f"d{i % 3}", "titre": f"Loi {i}"} for i in range(6)]

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/dossiers/date/json":
            return json_response({"dossiers_legislatif": dossiers})
        return json_response({"scrutins": []})

    adapter = NosDeputesAdapter(make_source("nosdeputes"), make_client(handler), max_records=5, sleep=no_sleep)
    response = await adapter.fetch()

    assert [draft.external_id for draft in response.data] == ["d0", "d1", "d2"]
    assert response.metrics.records_skipped == 2


async def test_source_delay_applies_before_each_request(recording_sleep, sleep_calls) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/dossiers/date/json":
            return json_response({"dossiers_legislatif": []})
        return json_response({"scrutins": []})

    source = make_source("nosdeputes", request_delay_seconds=2.0)
    adapter = NosDeputesAdapter(source, make_client(handler), sleep=recording_sleep)
    await adapter.fetch()

    assert len(sleep_calls) == 2
    assert sleep_calls[0] == 2.0


# La Fabrique

def test_is_open_dossier() -> None:
    assert is_open_dossier(None)
    assert is_open_dossier("En cours d'examen")
    assert is_open_dossier("Déposé")
    assert not is_open_dossier("Adopté")
    assert not is_open_dossier("Promulgué le 12 mars")
    assert not is_open_dossier("Navette")


async def test_lafabrique_filters_closed_and_stale_rows() -> None:
    stale = (datetime.utcnow() - timedelta(days=400)).strftime("%Y-%m-%d")
    csv = (
        "id;Titre;État du dossier;Date initiale\n"
        f"a;Loi ouverte;En cours;{_recent()}\n"
        f"b;Loi adoptée;Adopté;{_recent()}\n"
        f"c;Loi ancienne;;{stale}\n"
        f"d;Loi récente sans état;;{_recent()}\n"
    ).encode("utf-8")

    adapter = LaFabriqueAdapter(
        make_source("lafabrique"),
        make_client(lambda request: httpx.Response(200, content=csv)),
        sleep=no_sleep,
    )
    response = await adapter.fetch()

    assert [draft.external_id for draft in response.data] == ["a", "d"]
    assert response.metrics.records_skipped == 2
    assert all(draft.vote_datetime is None for draft in response.data)


async def test_lafabrique_retries_with_text_accept_header() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.headers.get("accept", "").startswith("text/csv"):
            return httpx.Response(200, content=b"id;Titre\nx;Loi Test\n")
        return httpx.Response(406)

    adapter = LaFabriqueAdapter(make_source("lafabrique"), make_client(handler), sleep=no_sleep)
    response = await adapter.fetch()

    assert response.endpoint == "csv_text_accept"
    assert [draft.title for draft in response.data] == ["Loi Test"]


# European Parliament

def test_is_amendment_only() -> None:
    assert is_amendment_only({"title": "Amendment 12 to the regulation"})
    assert is_amendment_only({"title": "Report", "type": "AMENDMENT_LIST"})
    assert not is_amendment_only({"title": "Regulation on packaging"})


async def test_eu_rest_api_filters_amendments_and_stale() -> None:
    stale = (datetime.utcnow() - timedelta(days=200)).strftime("%Y-%m-%d")
    data = {"data": [
        {"id": "p1", "title": "Regulation on packaging", "date": _recent()},
        {"id": "p2", "title": "Amendments to the packaging regulation", "date": _recent()},
        {"id": "p3", "title": "Old directive", "date": stale},
    ]}
    adapter = EUParliamentAdapter(
        make_source("eu_parliament"),
        make_client(lambda request: json_response(data)),
        sleep=no_sleep,
    )
    response = await adapter.fetch()

    assert response.endpoint == "api[application/json]"
    assert [draft.external_id for draft in response.data] == ["p1"]
    assert response.data[0].level.value == "eu"


async def test_eu_falls_back_to_rss() -> None:
    feed = f"""<?xml version="1.0"?>
    <rss version="2.0"><channel>
      <item><title>Directive on soil monitoring</title><link>https://oeil.secure.europarl.europa.eu/p/2</link>
        <guid>2023/0232(COD)</guid><pubDate>{datetime.utcnow().strftime('%a, %d %b %Y %H:%M:%S')} GMT</pubDate></item>
    </channel></rss>""".encode("utf-8")
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.host)
        if request.url.host == "oeil.secure.europarl.europa.eu":
            assert request.url.params["type"] == "legislative"
            return httpx.Response(200, content=feed)
        return httpx.Response(500)

    adapter = EUParliamentAdapter(make_source("eu_parliament"), make_client(handler), sleep=no_sleep)
    response = await adapter.fetch()

    assert response.endpoint == "rss"
    assert response.metrics.fallbacks_used == 3
    assert seen.count("data.europarl.europa.eu") == 3
    assert response.data[0].title == "Directive on soil monitoring"


def test_build_adapter_uses_registry() -> None:
    adapter = build_adapter(make_source("lafabrique"), make_client(lambda r: httpx.Response(200)), ImportConfig())
    assert isinstance(adapter, LaFabriqueAdapter)
    assert set(ADAPTERS) == {"nosdeputes", "lafabrique", "eu_parliament"}

    with pytest.raises(KeyError):
        build_adapter(make_source("lafabrique").model_copy(update={"key": "senat"}), make_client(lambda r: httpx.Response(200)), ImportConfig())
