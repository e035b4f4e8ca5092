"""
Normalizer from raw source records to canonical bill drafts.

Each (source, record kind) pair has a FieldMap listing, per logical field,
the candidate keys to try in order. Source schemas have renamed fields
over time, so every lookup goes through this ordered list and absent
values come back as explicit None.

Responsibility: Map RawRecord + source identity into a BillDraft, or drop it
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Tuple
from urllib.parse import urljoin, urlparse

from pydantic import ValidationError

from ..models.adapter_models import RawRecord
from ..models.bill import (
    BillDraft,
    Level,
    Source,
    SUMMARY_MAX_LENGTH,
    TITLE_MAX_LENGTH,
)
from ..utils.text import (
    clean_text,
    collapse_whitespace,
    first_sentence,
    parse_datetime,
    pick_field,
    stable_id,
    strip_html,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldMap:
    """Ordered candidate keys for each logical bill field."""

    title: Tuple[str, ...]
    external_id: Tuple[str, ...]
    summary: Tuple[str, ...] = ()
    url: Tuple[str, ...] = ()
    date: Tuple[str, ...] = ()
    chamber: Tuple[str, ...] = ()
    level: Tuple[str, ...] = ("level", "niveau")
    id_prefix: str = ""


NOSDEPUTES_DOSSIER = FieldMap(
    title=("titre", "title"),
    external_id=("id", "numero"),
    summary=("resume", "description"),
    url=("url", "url_dossier_assemblee", "url_texte"),
    date=("date_scrutin", "date"),
    chamber=("assemblee",),
)

NOSDEPUTES_SCRUTIN = FieldMap(
    title=("titre", "objet"),
    external_id=("numero",),
    summary=("contexte", "demandeur"),
    url=("url",),
    date=("date",),
    id_prefix="scrutin-",
)

LAFABRIQUE_ROW = FieldMap(
    title=("Titre", "titre", "title"),
    external_id=("id", "ID"),
    summary=("short_title",),
    url=("URL du dossier", "url"),
    date=(),
)

EU_DOCUMENT = FieldMap(
    title=("title", "label"),
    external_id=("id", "reference", "guid"),
    summary=("description", "summary", "abstract"),
    url=("link", "url"),
    date=("date", "pubDate", "adoptionDate"),
    chamber=("chamber", "body"),
)

FIELD_MAPS: Dict[Tuple[str, str], FieldMap] = {
    (Source.NOSDEPUTES.value, "dossier"): NOSDEPUTES_DOSSIER,
    (Source.NOSDEPUTES.value, "scrutin"): NOSDEPUTES_SCRUTIN,
    (Source.LAFABRIQUE.value, "csv_row"): LAFABRIQUE_ROW,
    (Source.EU_PARLIAMENT.value, "document"): EU_DOCUMENT,
    (Source.EU_PARLIAMENT.value, "rss_item"): EU_DOCUMENT,
}

SOURCE_LEVELS = {
    Source.NOSDEPUTES: Level.FRANCE,
    Source.LAFABRIQUE: Level.FRANCE,
    Source.EU_PARLIAMENT: Level.EU,
}

EU_CHAMBERS = {
    "EP": "European Parliament",
    "PARL": "European Parliament",
    "COUNCIL": "Council of the European Union",
    "COMMISSION": "European Commission",
}

EUR_LEX_URL = "https://eur-lex.europa.eu/legal-content/EN/ALL/?uri=CELEX:{reference}"

_NOSDEPUTES_URL_ID_RE = re.compile(r"/dossiers/(\w+)")
_EU_PROCEDURE_REF_RE = re.compile(r"\b\d{4}/\d{4}\(COD\)")
_EU_COM_REF_RE = re.compile(r"\bCOM\(\d{4}\)\s*\d+\b")
_EMPTY_BRACKETS_RE = re.compile(r"\(\s*\)|\[\s*\]")


def _as_text(value: Any) -> Optional[str]:
    """Flatten multilingual dicts and lists to a single string."""
    if value is None:
        return None
    if isinstance(value, dict):
        for key in ("fr", "en", "@value", "value", "label", "title"):
            if key in value:
                return _as_text(value[key])
        for item in value.values():
            text = _as_text(item)
            if text:
                return text
        return None
    if isinstance(value, (list, tuple)):
        for item in value:
            text = _as_text(item)
            if text:
                return text
        return None
    text = str(value).strip()
    return text or None


def _clean_markup(value: Any, max_length: int) -> Optional[str]:
    text = _as_text(value)
    if text is None:
        return None
    if "<" in text and ">" in text:
        text = strip_html(text)
    return clean_text(text, max_length)


def make_eu_title_readable(title: str) -> str:
    """Remove procedure and COM references from technical EU titles."""
    readable = _EU_PROCEDURE_REF_RE.sub("", title)
    readable = _EU_COM_REF_RE.sub("", readable)
    readable = _EMPTY_BRACKETS_RE.sub("", readable)
    readable = collapse_whitespace(readable).strip(" -–,;:")
    return readable or title


def level_from_url(url: Optional[str]) -> Optional[Level]:
    host = urlparse(url).netloc.lower() if url else ""
    if not host:
        return None
    if host.endswith("europa.eu"):
        return Level.EU
    if host.endswith(".fr"):
        return Level.FRANCE
    return None


def chamber_from_url(url: Optional[str]) -> Optional[str]:
    host = urlparse(url).netloc.lower() if url else ""
    if not host:
        return None
    if "senat.fr" in host:
        return "Sénat"
    if "assemblee-nationale.fr" in host or "nosdeputes.fr" in host:
        return "Assemblée Nationale"
    if "europarl.europa.eu" in host:
        return "European Parliament"
    if "consilium.europa.eu" in host:
        return "Council of the European Union"
    if "ec.europa.eu" in host:
        return "European Commission"
    return None


class Normalizer:
    """
    Converts RawRecords into BillDrafts.

    Example:
        normalizer = Normalizer()
        draft = normalizer.normalize(RawRecord(source="nosdeputes", kind="dossier", payload={...}))
        if draft is None:
            ...  # dropped: no usable title or id
    """

    def __init__(self, default_chambers: Optional[Mapping[str, str]] = None):
        self.default_chambers = dict(default_chambers or {
            Level.FRANCE.value: "Assemblée Nationale",
            Level.EU.value: "European Parliament",
        })

    def field_map(self, raw: RawRecord) -> Optional[FieldMap]:
        return FIELD_MAPS.get((raw.source, raw.kind))

    def normalize(self, raw: RawRecord) -> Optional[BillDraft]:
        """
        Normalize one raw record.

        Returns:
            BillDraft, or None when no usable title or external id exists
        """
        try:
            source = Source(raw.source)
        except ValueError:
            logger.warning(f"Unknown source '{raw.source}', dropping record")
            return None

        fields = self.field_map(raw)
        if fields is None:
            logger.warning(f"No field map for {raw.source}/{raw.kind}, dropping record")
            return None

        record = raw.payload

        title = self._title(source, record, fields)
        if not title:
            logger.debug(f"Dropping {raw.source}/{raw.kind} record without title")
            return None

        url = self._url(source, record, fields, raw.endpoint)
        external_id = self._external_id(source, record, fields, title, url)
        if not external_id:
            logger.debug(f"Dropping {raw.source}/{raw.kind} record without external id")
            return None

        level = self._level(source, record, fields, url)
        chamber = self._chamber(source, record, fields, url, level)

        try:
            return BillDraft(
                external_id=external_id,
                source=source,
                title=title,
                summary=self._summary(source, record, fields, title),
                full_text_url=url,
                level=level,
                chamber=chamber,
                vote_datetime=self._vote_datetime(record, fields),
                raw_payload=dict(record),
            )
        except ValidationError as exc:
            logger.warning(f"Invalid draft from {raw.source}/{raw.kind} ({external_id}): {exc}")
            return None

    def _title(self, source: Source, record: Mapping[str, Any], fields: FieldMap) -> Optional[str]:
        title = _clean_markup(pick_field(record, fields.title), TITLE_MAX_LENGTH)
        if title and source is Source.EU_PARLIAMENT:
            title = make_eu_title_readable(title)
        return title

    def _external_id(
        self,
        source: Source,
        record: Mapping[str, Any],
        fields: FieldMap,
        title: str,
        url: Optional[str],
    ) -> Optional[str]:
        value = _as_text(pick_field(record, fields.external_id))

        if value is None and source is Source.NOSDEPUTES and not fields.id_prefix and url:
            match = _NOSDEPUTES_URL_ID_RE.search(url)
            if match:
                value = match.group(1)

        if value is None:
            value = stable_id(url if source is Source.LAFABRIQUE and url else title)

        return f"{fields.id_prefix}{value}"[:255]

    def _summary(
        self,
        source: Source,
        record: Mapping[str, Any],
        fields: FieldMap,
        title: str,
    ) -> Optional[str]:
        summary = _clean_markup(pick_field(record, fields.summary), SUMMARY_MAX_LENGTH)

        if source is Source.NOSDEPUTES and not summary:
            texte = _as_text(record.get("texte"))
            if texte:
                summary = first_sentence(texte, 500)

        if source is Source.LAFABRIQUE:
            if summary and summary.lower() == title.lower():
                summary = None
            if not summary:
                themes = clean_text(pick_field(record, ("Thèmes", "themes")), 500)
                if themes:
                    summary = f"Dossier législatif concernant : {themes}"
                else:
                    summary = "Dossier législatif en cours d'examen à l'Assemblée nationale"

        return summary

    def _url(
        self,
        source: Source,
        record: Mapping[str, Any],
        fields: FieldMap,
        endpoint: Optional[str],
    ) -> Optional[str]:
        url = _as_text(pick_field(record, fields.url))
        if url and not url.startswith(("http://", "https://")):
            url = urljoin(endpoint, url) if endpoint and url.startswith("/") else None

        if url is None and source is Source.EU_PARLIAMENT:
            reference = _as_text(record.get("reference"))
            if reference:
                url = EUR_LEX_URL.format(reference=reference)

        return url[:1000] if url else None

    def _level(
        self,
        source: Source,
        record: Mapping[str, Any],
        fields: FieldMap,
        url: Optional[str],
    ) -> Level:
        explicit = _as_text(pick_field(record, fields.level))
        if explicit:
            try:
                return Level(explicit.lower())
            except ValueError:
                pass
        if source in SOURCE_LEVELS:
            return SOURCE_LEVELS[source]
        return level_from_url(url) or Level.FRANCE

    def _chamber(
        self,
        source: Source,
        record: Mapping[str, Any],
        fields: FieldMap,
        url: Optional[str],
        level: Level,
    ) -> str:
        code = _as_text(pick_field(record, fields.chamber))
        if code:
            if source is Source.NOSDEPUTES:
                return "Sénat" if code.lower() == "senat" else "Assemblée Nationale"
            if source is Source.EU_PARLIAMENT:
                return EU_CHAMBERS.get(code.upper(), "European Parliament")
            return clean_text(code, 100)

        return chamber_from_url(url) or self.default_chambers.get(level.value, "Assemblée Nationale")

    def _vote_datetime(self, record: Mapping[str, Any], fields: FieldMap) -> Optional[datetime]:
        if not fields.date:
            return None
        return parse_datetime(_as_text(pick_field(record, fields.date)))
