"""
La Fabrique de la Loi adapter.

Reads the semicolon-delimited dossier export and keeps only legislative
files still under examination.

Responsibility: Fetch and filter raw CSV rows from La Fabrique de la Loi
"""

from typing import Dict, List, Optional

from .base_adapter import BaseAdapter
from ..models.adapter_models import RawRecord
from ..models.bill import BillDraft
from ..utils.parsers import parse_csv
from ..utils.text import parse_datetime, pick_field

CLOSED_STATE_MARKERS = ("adopté", "rejeté", "promulgué", "abandon")
OPEN_STATE_MARKERS = ("en cours", "dépos")

STATE_COLUMNS = ("État du dossier", "Etat du dossier", "etat", "state")
DATE_COLUMNS = ("Date initiale", "date_initiale", "date")


def is_open_dossier(state: Optional[str]) -> bool:
    """
    Whether a dossier state describes a file still under examination.

    Empty states are accepted; closed states are rejected; any other
    non-empty state must mention an ongoing or filed procedure.
    """
    if not state:
        return True
    lowered = state.strip().lower()
    if any(marker in lowered for marker in CLOSED_STATE_MARKERS):
        return False
    return any(marker in lowered for marker in OPEN_STATE_MARKERS)


class LaFabriqueAdapter(BaseAdapter[BillDraft]):
    """
    Adapter for the La Fabrique de la Loi CSV export.

    Fallback chain:
    1. /api/dossiers.csv with default headers
    2. same export requested with Accept: text/csv

    Example:
        adapter = LaFabriqueAdapter(source_config, client)
        response = await adapter.fetch()
    """

    async def fetch_records(self) -> List[RawRecord]:
        url = self.source.endpoint_url("dossiers")
        rows = await self._first_successful([
            ("csv", lambda: self._fetch_csv(url, None)),
            ("csv_text_accept", lambda: self._fetch_csv(url, {"Accept": "text/csv, text/plain;q=0.9, */*;q=0.1"})),
        ])

        kept: List[RawRecord] = []
        cutoff = self._stale_cutoff()

        for record in rows:
            if len(kept) >= self.max_records:
                self.logger.info(f"Reached max bills limit ({self.max_records}), stopping")
                break

            state = pick_field(record.payload, STATE_COLUMNS)
            if not is_open_dossier(state):
                self.filtered += 1
                continue

            if not state:
                started = parse_datetime(pick_field(record.payload, DATE_COLUMNS))
                if started is not None and started < cutoff:
                    self.filtered += 1
                    continue

            kept.append(record)

        self.logger.info(f"Kept {len(kept)} open dossiers ({self.filtered} filtered out)")
        return kept

    async def _fetch_csv(self, url: str, headers: Optional[Dict[str, str]]) -> List[RawRecord]:
        result = await self._get(url, headers=headers)
        rows = parse_csv(result.content, delimiter=";")
        return [
            RawRecord(source=self.source_name, kind="csv_row", payload=row, endpoint=url)
            for row in rows
        ]
