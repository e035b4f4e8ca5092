from datetime import datetime

from constituant.utils.text import (
    clean_text,
    first_sentence,
    is_blank,
    parse_datetime,
    pick_field,
    slugify,
    strip_html,
)


def test_clean_text_collapses_whitespace_and_truncates() -> None:
    assert clean_text("  Projet   de\nloi  ") == "Projet de loi"
    assert clean_text("a" * 20, max_length=10) == "aaaaaaa..."
    assert clean_text("   ") is None
    assert clean_text(None) is None


def test_strip_html_drops_tags_and_scripts() -> None:
    html = "<p>Texte <b>important</b></p><script>alert(1)</script>"
    assert strip_html(html) == "Texte important"
    assert strip_html(None) == ""


def test_first_sentence_stops_at_period() -> None:
    assert first_sentence("<p>Première phrase. Deuxième phrase.</p>") == "Première phrase."


def test_pick_field_tries_candidates_in_order() -> None:
    record = {"Titre": "", "titre": "Loi climat", "TITLE": "Climate bill"}
    assert pick_field(record, ("Titre", "titre", "title")) == "Loi climat"
    assert pick_field({"TITLE": "Climate bill"}, ("title",)) == "Climate bill"
    assert pick_field({"title": "  "}, ("title",)) is None


def test_is_blank() -> None:
    assert is_blank(None)
    assert is_blank("  ")
    assert is_blank([])
    assert not is_blank(0)
    assert not is_blank("x")


def test_parse_datetime_known_formats() -> None:
    assert parse_datetime("2025-03-12") == datetime(2025, 3, 12)
    assert parse_datetime("2025-03-12 15:30:00") == datetime(2025, 3, 12, 15, 30)
    assert parse_datetime("2025-03-12T14:30:00Z") == datetime(2025, 3, 12, 14, 30)
    assert parse_datetime("2025-03-12T16:30:00+02:00") == datetime(2025, 3, 12, 14, 30)
    assert parse_datetime("12/03/2025") == datetime(2025, 3, 12)
    assert parse_datetime("Wed, 12 Mar 2025 10:00:00 GMT") == datetime(2025, 3, 12, 10, 0)


def test_parse_datetime_french_long_dates() -> None:
    assert parse_datetime("12 mars 2025") == datetime(2025, 3, 12)
    assert parse_datetime("mardi 1er avril 2025") == datetime(2025, 4, 1)


def test_parse_datetime_rejects_garbage() -> None:
    assert parse_datetime("bientôt") is None
    assert parse_datetime("") is None
    assert parse_datetime(None) is None


def test_slugify_folds_accents_and_limits_length() -> None:
    assert slugify("Loi « Climat & Résilience »") == "loi-climat-resilience"
    assert len(slugify("x" * 100)) == 40
    assert slugify("!!!") == ""
