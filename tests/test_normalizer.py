from datetime import datetime

from constituant.models.adapter_models import RawRecord
from constituant.models.bill import Level, Source
from constituant.normalization.normalizer import Normalizer, make_eu_title_readable


def _raw(source: str, kind: str, payload: dict, endpoint: str = None) -> RawRecord:
    """Helper to build a RawRecord for normalization tests."""
    return RawRecord(source=source, kind=kind, payload=payload, endpoint=endpoint)


def test_nosdeputes_dossier_maps_fields() -> None:
    draft = Normalizer().normalize(_raw("nosdeputes", "dossier", {
        "id": "pjl-24-0042",
        "titre": "  Projet de loi   relatif à l'énergie ",
        "resume": "<p>Texte sur l'énergie.</p>",
        "url": "https://www.nosdeputes.fr/17/dossier/energie",
        "date": "2025-03-12",
        "assemblee": "senat",
    }))

    assert draft is not None
    assert draft.source is Source.NOSDEPUTES
    assert draft.external_id == "pjl-24-0042"
    assert draft.title == "Projet de loi relatif à l'énergie"
    assert draft.summary == "Texte sur l'énergie."
    assert draft.level is Level.FRANCE
    assert draft.chamber == "Sénat"
    assert draft.vote_datetime == datetime(2025, 3, 12)


def test_nosdeputes_summary_falls_back_to_first_sentence_of_texte() -> None:
    draft = Normalizer().normalize(_raw("nosdeputes", "dossier", {
        "id": "1",
        "titre": "Loi",
        "texte": "<div>Article premier. Le reste du texte.</div>",
    }))
    assert draft.summary == "Article premier."
    assert draft.chamber == "Assemblée Nationale"
    assert draft.vote_datetime is None


def test_nosdeputes_scrutin_id_prefix() -> None:
    draft = Normalizer().normalize(_raw("nosdeputes", "scrutin", {
        "numero": "3127",
        "titre": "l'ensemble du projet de loi",
        "date": "2025-02-04",
    }))
    assert draft.external_id == "scrutin-3127"


def test_missing_title_drops_record() -> None:
    assert Normalizer().normalize(_raw("nosdeputes", "dossier", {"id": "1", "titre": "   "})) is None


def test_unknown_source_or_kind_drops_record() -> None:
    assert Normalizer().normalize(_raw("senat", "dossier", {"titre": "Loi"})) is None
    assert Normalizer().normalize(_raw("nosdeputes", "amendement", {"titre": "Loi"})) is None


def test_lafabrique_summary_defaults() -> None:
    normalizer = Normalizer()

    with_themes = normalizer.normalize(_raw("lafabrique", "csv_row", {
        "id": "pjl-climat",
        "Titre": "Climat et résilience",
        "short_title": "Climat et résilience",
        "Thèmes": "environnement, logement",
    }))
    assert with_themes.summary == "Dossier législatif concernant : environnement, logement"
    assert with_themes.vote_datetime is None

    bare = normalizer.normalize(_raw("lafabrique", "csv_row", {"id": "x", "Titre": "Loi Test"}))
    assert bare.summary == "Dossier législatif en cours d'examen à l'Assemblée nationale"


def test_lafabrique_id_is_stable_hash_of_url_when_missing() -> None:
    payload = {"Titre": "Loi Test", "URL du dossier": "https://www.lafabriquedelaloi.fr/articles.html?loi=x"}
    first = Normalizer().normalize(_raw("lafabrique", "csv_row", payload))
    second = Normalizer().normalize(_raw("lafabrique", "csv_row", dict(payload)))
    assert first.external_id == second.external_id
    assert len(first.external_id) == 32


def test_eu_document_title_and_url() -> None:
    draft = Normalizer().normalize(_raw("eu_parliament", "document", {
        "id": "eli/dl/proc/2023-0123",
        "title": {"en": "Regulation on packaging 2022/0396(COD) COM(2022) 677"},
        "reference": "52022PC0677",
        "date": "2025-03-12T10:00:00Z",
    }))
    assert draft.title == "Regulation on packaging"
    assert draft.level is Level.EU
    assert draft.chamber == "European Parliament"
    assert draft.full_text_url == "https://eur-lex.europa.eu/legal-content/EN/ALL/?uri=CELEX:52022PC0677"


def test_relative_url_resolved_against_endpoint() -> None:
    draft = Normalizer().normalize(_raw(
        "nosdeputes", "dossier",
        {"id": "1", "titre": "Loi", "url": "/17/dossier/loi"},
        endpoint="https://www.nosdeputes.fr/dossiers/date/json",
    ))
    assert draft.full_text_url == "https://www.nosdeputes.fr/17/dossier/loi"


def test_make_eu_title_readable_keeps_original_when_empty() -> None:
    assert make_eu_title_readable("2022/0396(COD)") == "2022/0396(COD)"
