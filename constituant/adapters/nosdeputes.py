"""
NosDéputés.fr adapter for fetching French legislative dossiers.

Pulls recent dossiers from the NosDéputés JSON API, falling back to the
project search endpoint, and adds the latest scrutins (recorded votes of
the current legislature) as a secondary feed.

Responsibility: Fetch raw dossier and scrutin records from NosDéputés.fr
"""

from datetime import datetime
from typing import Any, List, Optional

from .base_adapter import (
    BaseAdapter,
    FetchFailedError,
    SourceUnavailableError,
    unwrap_record,
)
from ..models.adapter_models import AdapterError, RawRecord
from ..models.bill import BillDraft
from ..utils.parsers import ParseError, parse_json


class NosDeputesAdapter(BaseAdapter[BillDraft]):
    """
    Adapter for NosDéputés.fr.

    Fallback chain for dossiers:
    1. /dossiers/date/json (key "dossiers_legislatif")
    2. /recherche/projets?format=json

    Scrutins (/17/scrutins/json) are fetched after the dossiers on a
    best-effort basis, capped at SCRUTIN_LIMIT.

    Example:
        adapter = NosDeputesAdapter(source_config, client)
        response = await adapter.fetch()
    """

    SCRUTIN_LIMIT = 20

    DOSSIER_KEYS = ("dossiers_legislatif", "dossiers")
    SEARCH_KEYS = ("resultats", "results", "dossiers_legislatif", "projets")
    SCRUTIN_KEYS = ("scrutins",)

    async def fetch_records(self) -> List[RawRecord]:
        chain_error = None
        try:
            dossiers = await self._first_successful([
                ("dossiers", self._fetch_dossiers),
                ("search", self._fetch_search),
            ])
        except SourceUnavailableError as e:
            chain_error = e
            dossiers = []

        dossiers = dossiers[: self.max_records]
        remaining = max(0, self.max_records - len(dossiers))
        scrutins = await self._fetch_scrutins(min(self.SCRUTIN_LIMIT, remaining))

        if chain_error is not None:
            if scrutins is None:
                raise chain_error
            self.endpoint_used = "scrutins"
            self.soft_errors.append(AdapterError(
                timestamp=datetime.utcnow(),
                error_type=type(chain_error).__name__,
                message=str(chain_error),
                context={"adapter": self.source_name},
                retryable=True,
            ))

        return dossiers + (scrutins or [])

    async def _fetch_dossiers(self) -> List[RawRecord]:
        url = self.source.endpoint_url("dossiers")
        result = await self._get(url)
        return self._extract(parse_json(result.content), self.DOSSIER_KEYS, "dossier", url)

    async def _fetch_search(self) -> List[RawRecord]:
        url = self.source.endpoint_url("search")
        result = await self._get(url)
        return self._extract(parse_json(result.content), self.SEARCH_KEYS, "dossier", url)

    async def _fetch_scrutins(self, limit: int) -> Optional[List[RawRecord]]:
        """Best-effort scrutin fetch; None when the endpoint failed."""
        if "scrutins" not in self.source.endpoints or limit <= 0:
            return []

        url = self.source.endpoint_url("scrutins")
        try:
            result = await self._get(url)
            records = self._extract(parse_json(result.content), self.SCRUTIN_KEYS, "scrutin", url)
        except (FetchFailedError, ParseError) as e:
            self.logger.warning(f"Failed to fetch scrutins: {e}")
            return None

        return records[:limit]

    def _extract(self, data: Any, keys: tuple, kind: str, url: str) -> List[RawRecord]:
        if isinstance(data, list):
            items = data
        elif isinstance(data, dict):
            items = None
            for key in keys:
                if isinstance(data.get(key), list):
                    items = data[key]
                    break
            if items is None:
                raise ParseError(f"None of {list(keys)} found in response")
        else:
            raise ParseError(f"Unexpected JSON document type: {type(data).__name__}")

        records: List[RawRecord] = []
        for item in items:
            payload = unwrap_record(item)
            if payload is None:
                self.filtered += 1
                continue
            records.append(RawRecord(source=self.source_name, kind=kind, payload=payload, endpoint=url))

        self.logger.info(f"Found {len(records)} {kind} records at {url}")
        return records
