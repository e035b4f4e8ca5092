import httpx
import pytest

from constituant.bootstrap import build_strategy
from constituant.cli.pipeline_cli import build_parser
from constituant.config import ImportMode, Settings
from constituant.services.bill_upsert_service import DirectPublishStrategy, ReviewQueueStrategy
from constituant.services.full_text_service import FullTextService
from constituant.utils.rate_limiter import RequestThrottle

from helpers import make_client


async def test_get_reports_http_errors_as_values() -> None:
    client = make_client(lambda request: httpx.Response(503, content=b"down"))
    result = await client.get("https://www.nosdeputes.fr/dossiers/date/json")

    assert not result.ok
    assert result.status_code == 503
    assert result.error == "HTTP 503"


async def test_get_reports_transport_errors_as_values() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    result = await make_client(handler).get("https://www.nosdeputes.fr/")

    assert not result.ok
    assert result.status_code is None
    assert "ConnectError" in result.error


async def test_post_json_sends_body_and_default_headers() -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, content=b"{}")

    result = await make_client(handler).post_json("https://api.example.org/chat", {"model": "m"})

    assert result.ok
    assert seen[0].headers["content-type"] == "application/json"
    assert seen[0].headers["user-agent"].startswith("Constituant/")
    assert seen[0].content == b'{"model": "m"}'


async def test_throttle_waits_before_every_request(recording_sleep, sleep_calls) -> None:
    throttle = RequestThrottle(3.0, sleep=recording_sleep)
    await throttle.wait()
    await throttle.wait()

    assert len(sleep_calls) == 2
    assert sleep_calls[0] == 3.0
    assert 0 < sleep_calls[1] <= 3.0


async def test_throttle_without_delay_never_sleeps(recording_sleep, sleep_calls) -> None:
    throttle = RequestThrottle(0.0, sleep=recording_sleep)
    assert await throttle.wait() == 0.0
    assert sleep_calls == []

    with pytest.raises(ValueError):
        RequestThrottle(-1.0)


async def test_full_text_is_flattened_and_truncated() -> None:
    html = b"<html><body><script>x()</script><h1>Article 1</h1><p>Le texte de loi.</p></body></html>"
    service = FullTextService(make_client(lambda request: httpx.Response(200, content=html)), max_chars=12)

    text = await service.fetch("https://www.legifrance.gouv.fr/texte")

    assert text == "Article 1 Le"


async def test_full_text_skips_pdf_and_failures() -> None:
    pdf = FullTextService(make_client(lambda request: httpx.Response(200, content=b"%PDF-1.7 ...")))
    assert await pdf.fetch("https://example.org/loi.pdf") is None

    down = FullTextService(make_client(lambda request: httpx.Response(404)))
    assert await down.fetch("https://example.org/loi") is None
    assert await down.fetch(None) is None


def test_build_strategy_follows_mode() -> None:
    settings = Settings()
    assert isinstance(build_strategy(settings, ImportMode.REVIEW), ReviewQueueStrategy)
    assert isinstance(build_strategy(settings, ImportMode.DIRECT), DirectPublishStrategy)


def test_cli_parser() -> None:
    args = build_parser().parse_args(["fetch", "--source", "nosdeputes", "--source", "lafabrique", "--mode", "direct"])
    assert args.command == "fetch"
    assert args.sources == ["nosdeputes", "lafabrique"]
    assert args.mode == "direct"

    args = build_parser().parse_args(["reclassify", "--limit", "5", "--published"])
    assert args.limit == 5
    assert args.published

    with pytest.raises(SystemExit):
        build_parser().parse_args(["fetch", "--mode", "auto"])
