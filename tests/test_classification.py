import json

import httpx
import pytest

from constituant.models.bill import SENTINEL_THEME
from constituant.services.classification_service import (
    ClassificationError,
    parse_model_reply,
    strip_code_fences,
)

from helpers import VALID_REPLY, chat_reply, json_response, make_classifier


def test_strip_code_fences() -> None:
    assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fences('```\n{"a": 1}```') == '{"a": 1}'
    assert strip_code_fences('{"a": 1}') == '{"a": 1}'


def test_parse_model_reply_replaces_unknown_theme() -> None:
    reply = json.loads(VALID_REPLY)
    reply["theme"] = "Sport"
    classification = parse_model_reply(json.dumps(reply))

    assert classification.theme == SENTINEL_THEME
    assert classification.summary.startswith("Ce projet impose")


def test_parse_model_reply_clamps_confidence_and_wraps_concerne() -> None:
    reply = json.loads(VALID_REPLY)
    reply["confidence"] = 4
    reply["concerne"] = "agriculteurs"
    classification = parse_model_reply(json.dumps(reply))

    assert classification.confidence == 1.0
    assert classification.concerne == ["agriculteurs"]


def test_parse_model_reply_requires_theme_and_summary() -> None:
    with pytest.raises(ClassificationError):
        parse_model_reply('{"theme": "Santé"}')
    with pytest.raises(ClassificationError):
        parse_model_reply("Voici la réponse : Santé")


async def test_classify_success() -> None:
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return chat_reply("```json\n" + VALID_REPLY + "\n```")

    classifier = make_classifier(handler)
    outcome = await classifier.classify("Loi Test", "Un résumé du texte", "Article 1. Texte intégral.")

    assert outcome.succeeded
    assert outcome.attempts == 1
    assert outcome.classification.theme == "Environnement & Énergie"
    assert outcome.classification.concerne == ["propriétaires", "locataires"]
    assert requests[0].headers["authorization"] == "Bearer test-key"

    body = json.loads(requests[0].content)
    assert body["messages"][0]["role"] == "user"
    assert "Loi Test" in body["messages"][0]["content"]


async def test_classify_truncates_full_text_in_prompt() -> None:
    classifier = make_classifier(max_full_text_chars=10)
    prompt = classifier.build_prompt("Loi", "Résumé", "0123456789ABCDEF")

    assert "0123456789" in prompt
    assert "ABCDEF" not in prompt


async def test_classify_retries_then_falls_back() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return chat_reply("not json at all")

    classifier = make_classifier(handler, max_retries=3)
    outcome = await classifier.classify("Loi Test", "Un résumé du texte")

    assert len(calls) == 3
    assert outcome.attempts == 3
    assert not outcome.succeeded
    assert outcome.classification.theme == SENTINEL_THEME
    assert outcome.classification.summary == "Un résumé du texte"
    assert outcome.classification.confidence == 0.0


async def test_classify_retries_on_connection_errors() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    outcome = await make_classifier(handler, max_retries=3).classify("Loi Test", "Un résumé du texte")

    assert len(calls) == 3
    assert outcome.attempts == 3
    assert not outcome.succeeded
    assert "ConnectError" in outcome.error
    assert outcome.classification.theme == SENTINEL_THEME
    assert outcome.classification.confidence == 0.0


async def test_classify_recovers_after_server_error() -> None:
    replies = iter([json_response({"error": "overloaded"}, status_code=503), chat_reply(VALID_REPLY)])
    classifier = make_classifier(lambda request: next(replies))

    outcome = await classifier.classify("Loi Test", "Un résumé du texte")

    assert outcome.succeeded
    assert outcome.attempts == 2


async def test_classify_without_api_key_never_calls_api() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("classifier API must not be called")

    outcome = await make_classifier(handler, api_key="").classify("Loi Test", "Un résumé")
    assert outcome.classification.theme == SENTINEL_THEME
    assert outcome.error

    disabled = await make_classifier(handler, enabled=False).classify("Loi Test", "Un résumé")
    assert disabled.classification.is_sentinel


async def test_classify_requires_summary_or_full_text() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("classifier API must not be called")

    outcome = await make_classifier(handler).classify("Loi Test", "  ", None)

    assert outcome.classification.is_sentinel
    assert outcome.classification.summary is None


async def test_fallback_summary_is_truncated() -> None:
    classifier = make_classifier(fallback_summary_chars=20, api_key="")
    outcome = await classifier.classify("Loi Test", "x" * 100)

    assert len(outcome.classification.summary) == 20
    assert outcome.classification.summary.endswith("...")
