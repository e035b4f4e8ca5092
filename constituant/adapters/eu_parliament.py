"""
European Parliament adapter for legislative procedures.

Queries the Open Data Portal REST API and falls back to alternate Accept
headers, then to the Legislative Observatory (OEIL) RSS feed.

Responsibility: Fetch and filter raw EU legislative procedure records
"""

from typing import Any, List

from .base_adapter import BaseAdapter, unwrap_record
from ..models.adapter_models import RawRecord
from ..models.bill import BillDraft
from ..utils.parsers import ParseError, parse_json, parse_rss
from ..utils.text import parse_datetime, pick_field

AMENDMENT_PREFIXES = ("amendment", "amendement", "amendments", "amendements")
RECORD_KEYS = ("data", "items", "@graph")
DATE_KEYS = ("date", "pubDate", "adoptionDate")


def _text(value: Any) -> str:
    if isinstance(value, dict):
        value = next((v for v in value.values() if isinstance(v, str)), "")
    if isinstance(value, list):
        value = next((v for v in value if isinstance(v, str)), "")
    return str(value or "").strip()


def is_amendment_only(record: dict) -> bool:
    """Documents that only amend another text are not bills of their own."""
    title = _text(pick_field(record, ("title", "label"))).lower()
    doc_type = _text(pick_field(record, ("type", "document_type", "work_type"))).lower()
    return title.startswith(AMENDMENT_PREFIXES) or doc_type.startswith(AMENDMENT_PREFIXES)


class EUParliamentAdapter(BaseAdapter[BillDraft]):
    """
    Adapter for the European Parliament.

    Fallback chain:
    1. REST /api/v2/documents, Accept: application/json
    2. same request, Accept: application/ld+json
    3. same request, Accept: */*
    4. OEIL RSS feed (?type=legislative)

    Example:
        adapter = EUParliamentAdapter(source_config, client)
        response = await adapter.fetch()
    """

    ACCEPT_HEADERS = ("application/json", "application/ld+json", "*/*")

    async def fetch_records(self) -> List[RawRecord]:
        attempts = [
            (f"api[{accept}]", self._api_attempt(accept))
            for accept in self.ACCEPT_HEADERS
        ]
        if "oeil_rss" in self.source.endpoints:
            attempts.append(("rss", self._fetch_rss))

        records = await self._first_successful(attempts)

        kept: List[RawRecord] = []
        cutoff = self._stale_cutoff()

        for record in records:
            if len(kept) >= self.max_records:
                break

            if is_amendment_only(record.payload):
                self.filtered += 1
                continue

            activity = parse_datetime(_text(pick_field(record.payload, DATE_KEYS)) or None)
            if activity is not None and activity < cutoff:
                self.filtered += 1
                continue

            kept.append(record)

        self.logger.info(f"Kept {len(kept)} EU procedures ({self.filtered} filtered out)")
        return kept

    def _api_attempt(self, accept: str):
        async def attempt() -> List[RawRecord]:
            return await self._fetch_api(accept)
        return attempt

    async def _fetch_api(self, accept: str) -> List[RawRecord]:
        url = self.source.endpoint_url("api")
        params = {
            "type": "LEGISLATIVE_PROCEDURE",
            "limit": self.max_records,
            "offset": 0,
            "sort": "-date",
            "format": "application/json",
        }
        result = await self._get(url, params=params, headers={"Accept": accept, "Accept-Language": "en"})
        data = parse_json(result.content)

        if isinstance(data, list):
            items = data
        elif isinstance(data, dict):
            items = next((data[key] for key in RECORD_KEYS if isinstance(data.get(key), list)), None)
            if items is None:
                raise ParseError(f"None of {list(RECORD_KEYS)} found in response")
        else:
            raise ParseError(f"Unexpected JSON document type: {type(data).__name__}")

        records = []
        for item in items:
            payload = unwrap_record(item)
            if payload is None:
                self.filtered += 1
                continue
            records.append(RawRecord(source=self.source_name, kind="document", payload=payload, endpoint=url))
        return records

    async def _fetch_rss(self) -> List[RawRecord]:
        self.logger.info("Falling back to EU Parliament RSS feed")
        url = self.source.endpoint_url("oeil_rss")
        result = await self._get(url, params={"type": "legislative"})
        return [
            RawRecord(source=self.source_name, kind="rss_item", payload=item, endpoint=url)
            for item in parse_rss(result.content)
        ]
