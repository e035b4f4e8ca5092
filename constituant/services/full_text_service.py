"""
Full legislative text retrieval.

Responsibility: Fetch a bill's full text page and reduce it to plain text
"""

import logging
from typing import Optional

from ..utils.http_client import HttpFetchClient
from ..utils.text import is_blank, strip_html

logger = logging.getLogger(__name__)


class FullTextService:
    """
    Fetch and flatten full-text pages for classification.

    PDF documents are not parsed and yield None.

    Example:
        service = FullTextService(client)
        text = await service.fetch(bill.full_text_url)
    """

    def __init__(
        self,
        client: HttpFetchClient,
        max_chars: int = 50000,
        timeout_seconds: float = 20.0,
    ):
        self.client = client
        self.max_chars = max_chars
        self.timeout_seconds = timeout_seconds

    async def fetch(self, url: Optional[str]) -> Optional[str]:
        """
        Fetch one full-text URL.

        Returns:
            Plain text truncated to max_chars, or None on any failure
        """
        if is_blank(url):
            return None

        result = await self.client.get(
            url,
            headers={"Accept": "text/html,application/xhtml+xml,*/*;q=0.8"},
            timeout_seconds=self.timeout_seconds,
        )
        if not result.ok:
            logger.warning(f"Full text unavailable at {url}: {result.error}")
            return None

        if result.content.lstrip().startswith(b"%PDF-"):
            logger.info(f"Skipping PDF full text at {url}")
            return None

        text = strip_html(result.text)
        if not text:
            return None
        return text[: self.max_chars]
