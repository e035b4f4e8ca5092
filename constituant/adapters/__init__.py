"""
Adapters package for Constituant.

This package contains all bill source adapters that implement
the BaseAdapter interface, and the registry mapping source keys
to adapter classes.
"""

from typing import Awaitable, Callable, Dict, Optional, Type

from .base_adapter import BaseAdapter, FetchFailedError, SourceUnavailableError
from .eu_parliament import EUParliamentAdapter
from .lafabrique import LaFabriqueAdapter
from .nosdeputes import NosDeputesAdapter
from ..config import ImportConfig, SourceConfig
from ..normalization.normalizer import Normalizer
from ..utils.http_client import HttpFetchClient

ADAPTERS: Dict[str, Type[BaseAdapter]] = {
    "nosdeputes": NosDeputesAdapter,
    "lafabrique": LaFabriqueAdapter,
    "eu_parliament": EUParliamentAdapter,
}


def build_adapter(
    source: SourceConfig,
    client: HttpFetchClient,
    import_config: ImportConfig,
    normalizer: Optional[Normalizer] = None,
    sleep: Optional[Callable[[float], Awaitable[None]]] = None,
) -> BaseAdapter:
    """
    Instantiate the adapter registered for a source key.

    Raises:
        KeyError: When no adapter is registered for source.key
    """
    adapter_cls = ADAPTERS[source.key]
    return adapter_cls(
        source,
        client,
        normalizer=normalizer or Normalizer(import_config.default_chambers),
        max_records=import_config.max_bills_per_source,
        fetch_days_back=import_config.fetch_days_back,
        sleep=sleep,
    )


__all__ = [
    "ADAPTERS",
    "BaseAdapter",
    "EUParliamentAdapter",
    "FetchFailedError",
    "LaFabriqueAdapter",
    "NosDeputesAdapter",
    "SourceUnavailableError",
    "build_adapter",
]
