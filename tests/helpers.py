"""Builders shared by the test modules."""

import json
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

import httpx

from constituant.config import ClassifierConfig, SourceConfig
from constituant.db.models import BillModel
from constituant.models.bill import BillDraft, Level, Source
from constituant.services.classification_service import ClassificationService
from constituant.utils.http_client import HttpFetchClient

Handler = Callable[[httpx.Request], httpx.Response]


async def no_sleep(seconds: float) -> None:
    return None


def make_client(handler: Handler) -> HttpFetchClient:
    """HttpFetchClient backed by an httpx.MockTransport."""
    return HttpFetchClient(transport=httpx.MockTransport(handler), sleep=no_sleep)


def json_response(data: Any, status_code: int = 200) -> httpx.Response:
    return httpx.Response(
        status_code,
        content=json.dumps(data).encode("utf-8"),
        headers={"content-type": "application/json"},
    )


def chat_reply(content: str) -> httpx.Response:
    """Chat-completion envelope around a model message."""
    return json_response({"choices": [{"message": {"role": "assistant", "content": content}}]})


VALID_REPLY = json.dumps({
    "theme": "Environnement & Énergie",
    "abstract": "Le texte encadre la rénovation énergétique.",
    "summary": "Ce projet impose des travaux de rénovation aux logements les plus énergivores.",
    "pour": "Réduit les émissions du bâtiment",
    "contre": "Coût élevé pour les propriétaires",
    "concerne": ["propriétaires", "locataires"],
    "confidence": 0.9,
})


def make_classifier(handler: Optional[Handler] = None, **overrides: Any) -> ClassificationService:
    """Classifier wired to a mock transport; answers VALID_REPLY by default."""
    values: Dict[str, Any] = {"api_key": "test-key", "retry_delay_seconds": 0.0}
    values.update(overrides)
    handler = handler or (lambda request: chat_reply(VALID_REPLY))
    return ClassificationService(ClassifierConfig(**values), client=make_client(handler), sleep=no_sleep)


def make_draft(**fields: Any) -> BillDraft:
    values: Dict[str, Any] = {
        "external_id": "42",
        "source": Source.NOSDEPUTES,
        "title": "Loi Test",
        "summary": "Un résumé du texte",
        "full_text_url": "https://www.assemblee-nationale.fr/dyn/17/dossiers/loi_test",
        "level": Level.FRANCE,
        "chamber": "Assemblée Nationale",
        "vote_datetime": None,
    }
    values.update(fields)
    return BillDraft(**values)


async def add_bill(session, bill_id: str = "fr-loi-test-2025", **fields: Any) -> BillModel:
    """Insert a published bill directly."""
    values: Dict[str, Any] = {
        "id": bill_id,
        "title": "Loi Test",
        "summary": "Un résumé du texte",
        "level": "france",
        "chamber": "Assemblée Nationale",
        "vote_datetime": datetime.utcnow() + timedelta(days=10),
        "status": "upcoming",
    }
    values.update(fields)
    bill = BillModel(**values)
    session.add(bill)
    await session.flush()
    return bill


SOURCE_DEFAULTS: Dict[str, Dict[str, Any]] = {
    "nosdeputes": dict(
        name="NosDéputés.fr",
        priority=1,
        level="france",
        base_url="https://www.nosdeputes.fr",
        endpoints={
            "dossiers": "/dossiers/date/json",
            "search": "/recherche/projets?format=json",
            "scrutins": "/17/scrutins/json",
        },
    ),
    "lafabrique": dict(
        name="La Fabrique de la Loi",
        priority=2,
        level="france",
        base_url="https://www.lafabriquedelaloi.fr",
        endpoints={"dossiers": "/api/dossiers.csv"},
    ),
    "eu_parliament": dict(
        name="European Parliament",
        priority=3,
        level="eu",
        base_url="https://data.europarl.europa.eu",
        endpoints={
            "api": "/api/v2/documents",
            "oeil_rss": "https://oeil.secure.europarl.europa.eu/oeil/rss/search.do",
        },
    ),
}


def make_source(key: str = "nosdeputes", **fields: Any) -> SourceConfig:
    """Source config with no request delay."""
    values = dict(SOURCE_DEFAULTS[key])
    values.update(fields)
    values.setdefault("request_delay_seconds", 0.0)
    return SourceConfig(key=key, **values)
