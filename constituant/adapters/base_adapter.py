"""
Base adapter interface for all bill sources.

Defines the contract that every source adapter (NosDéputés, La Fabrique,
EU Parliament) implements. Ensures consistent fallback handling, request
throttling, record capping and response format across all sources.

Responsibility: Abstract base class defining adapter contract
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, Generic, List, Optional, Sequence, Tuple, TypeVar
import logging

from ..config import SourceConfig
from ..models.adapter_models import (
    AdapterResponse,
    AdapterStatus,
    AdapterError,
    AdapterMetrics,
    RawRecord,
)
from ..models.bill import BillDraft
from ..normalization.normalizer import Normalizer
from ..utils.dedupe import dedupe_by_key
from ..utils.http_client import FetchResult, HttpFetchClient
from ..utils.parsers import ParseError
from ..utils.rate_limiter import RequestThrottle


T = TypeVar('T')

EndpointAttempt = Tuple[str, Callable[[], Awaitable[List[RawRecord]]]]


class FetchFailedError(Exception):
    """Transport or HTTP failure on one endpoint"""


class SourceUnavailableError(Exception):
    """Every endpoint in a source's fallback chain failed"""

    def __init__(self, source: str, attempts: Sequence[str]):
        self.source = source
        self.attempts = list(attempts)
        detail = "; ".join(self.attempts) or "no endpoint attempted"
        super().__init__(f"All endpoints failed for {source}: {detail}")


class BaseAdapter(ABC, Generic[T]):
    """
    Abstract base class for all bill source adapters.

    Every adapter MUST:
    1. Implement fetch_records() returning RawRecords after its fallback
       chain, business filters and record cap
    2. Route every HTTP call through self._get() so the source delay applies
    3. Count records removed by business filters in self.filtered

    fetch() turns those records into drafts and never raises: a source
    whose whole fallback chain fails yields a FAILURE response.
    """

    def __init__(
        self,
        source: SourceConfig,
        client: HttpFetchClient,
        normalizer: Optional[Normalizer] = None,
        max_records: int = 50,
        fetch_days_back: int = 90,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        """
        Initialize base adapter.

        Args:
            source: Immutable source configuration
            client: Shared HTTP fetch client
            normalizer: Normalizer used by normalize()
            max_records: Ceiling on records processed per run
            fetch_days_back: Staleness threshold for activity dates
            sleep: Awaitable sleep for the request throttle (tests pass a no-op)
        """
        self.source = source
        self.source_name = source.key
        self.client = client
        self.normalizer = normalizer or Normalizer()
        self.max_records = max_records
        self.fetch_days_back = fetch_days_back

        self.throttle = RequestThrottle(source.request_delay_seconds, sleep=sleep)

        self.logger = logging.getLogger(f"adapter.{source.key}")

        # Per-run state, reset by fetch()
        self.filtered = 0
        self.fallbacks_used = 0
        self.endpoint_used: Optional[str] = None
        self.soft_errors: List[AdapterError] = []

    @abstractmethod
    async def fetch_records(self) -> List[RawRecord]:
        """
        Retrieve raw records from the source.

        Raises:
            SourceUnavailableError: When every fallback endpoint failed
        """

    def normalize(self, raw: RawRecord) -> Optional[BillDraft]:
        """Normalize one raw record (None means drop and count as skipped)."""
        return self.normalizer.normalize(raw)

    async def fetch(self, **kwargs: Any) -> AdapterResponse[BillDraft]:
        """
        Fetch, normalize and de-duplicate one run's worth of bills.

        Returns:
            AdapterResponse containing BillDrafts, errors, and metrics
        """
        start_time = datetime.utcnow()
        self.filtered = 0
        self.fallbacks_used = 0
        self.endpoint_used = None
        self.soft_errors = []

        self.logger.info(f"Fetching {self.source.name} (max {self.max_records} records)")

        try:
            records = await self.fetch_records()
        except SourceUnavailableError as e:
            self.logger.error(str(e))
            return self._build_failure_response(e, start_time, retryable=True)
        except Exception as e:
            self.logger.error(f"Unexpected failure fetching {self.source_name}: {e}", exc_info=True)
            return self._build_failure_response(e, start_time)

        drafts: List[BillDraft] = []
        errors: List[AdapterError] = list(self.soft_errors)
        skipped = self.filtered
        failed = 0

        for raw in records:
            try:
                draft = self.normalize(raw)
            except Exception as e:
                self.logger.warning(f"Failed to normalize {raw.kind} record: {e}", exc_info=True)
                errors.append(AdapterError(
                    timestamp=datetime.utcnow(),
                    error_type=type(e).__name__,
                    message=str(e),
                    context={"adapter": self.source_name, "kind": raw.kind},
                    retryable=False
                ))
                failed += 1
                continue

            if draft is None:
                skipped += 1
                continue
            drafts.append(draft)

        drafts, duplicates = dedupe_by_key(drafts, lambda draft: draft.natural_key())
        if duplicates:
            self.logger.info(f"Dropped {duplicates} duplicate records")
        skipped += duplicates

        self.logger.info(
            f"Fetched {len(drafts)} bills from {self.source.name} "
            f"via '{self.endpoint_used}' ({skipped} skipped, {len(errors)} errors)"
        )

        return self._build_success_response(
            data=drafts,
            errors=errors,
            start_time=start_time,
            attempted=len(records) + self.filtered,
            skipped=skipped,
            failed=failed,
        )

    async def _get(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> FetchResult:
        """Throttled GET that raises FetchFailedError on failure."""
        await self.throttle.wait()
        result = await self.client.get(
            url,
            params=params,
            headers=headers,
            timeout_seconds=self.source.timeout_seconds,
        )
        if not result.ok:
            raise FetchFailedError(f"{url}: {result.error}")
        return result

    async def _first_successful(self, attempts: Sequence[EndpointAttempt]) -> List[RawRecord]:
        """
        Walk a fallback chain until one endpoint yields records.

        Transport and decode failures move on to the next endpoint; an
        empty but well-formed answer counts as success.
        """
        failures: List[str] = []
        for name, attempt in attempts:
            try:
                records = await attempt()
            except (FetchFailedError, ParseError) as e:
                self.logger.warning(f"Endpoint '{name}' failed: {e}")
                failures.append(f"{name}: {e}")
                self.fallbacks_used += 1
                continue

            self.endpoint_used = name
            return records

        raise SourceUnavailableError(self.source_name, failures)

    def _stale_cutoff(self) -> datetime:
        return datetime.utcnow() - timedelta(days=self.fetch_days_back)

    def _build_success_response(
        self,
        data: List[BillDraft],
        errors: List[AdapterError],
        start_time: datetime,
        attempted: int,
        skipped: int,
        failed: int = 0,
    ) -> AdapterResponse[BillDraft]:
        """
        Build a successful AdapterResponse.

        Helper method to construct response with calculated metrics.
        """
        end_time = datetime.utcnow()
        duration = (end_time - start_time).total_seconds()

        if not errors:
            status = AdapterStatus.SUCCESS
        else:
            status = AdapterStatus.PARTIAL_SUCCESS

        return AdapterResponse(
            status=status,
            data=data,
            errors=errors,
            metrics=AdapterMetrics(
                records_attempted=attempted,
                records_succeeded=len(data),
                records_skipped=skipped,
                records_failed=failed,
                duration_seconds=duration,
                fallbacks_used=self.fallbacks_used,
            ),
            source=self.source_name,
            endpoint=self.endpoint_used,
            fetch_timestamp=end_time,
        )

    def _build_failure_response(
        self,
        error: Exception,
        start_time: datetime,
        retryable: bool = False
    ) -> AdapterResponse[BillDraft]:
        """
        Build a failed AdapterResponse.

        Used when the entire fetch operation fails (all endpoints down, etc.)
        """
        end_time = datetime.utcnow()
        duration = (end_time - start_time).total_seconds()

        return AdapterResponse(
            status=AdapterStatus.SOURCE_UNAVAILABLE if retryable else AdapterStatus.FAILURE,
            data=None,
            errors=[AdapterError(
                timestamp=end_time,
                error_type=type(error).__name__,
                message=str(error),
                context={"adapter": self.source_name},
                retryable=retryable
            )],
            metrics=AdapterMetrics(
                records_attempted=0,
                records_succeeded=0,
                records_skipped=0,
                records_failed=0,
                duration_seconds=duration,
                fallbacks_used=self.fallbacks_used,
            ),
            source=self.source_name,
            endpoint=None,
            fetch_timestamp=end_time
        )


def unwrap_record(item: Any) -> Optional[Dict[str, Any]]:
    """Unwrap single-key envelopes such as {"dossier": {...}}."""
    if not isinstance(item, dict):
        return None
    if len(item) == 1:
        (inner,) = item.values()
        if isinstance(inner, dict):
            return inner
    return item
