"""
Language-model classification of bills.

Builds a single structured-output prompt, calls a chat-completion
endpoint, repairs and validates the returned JSON against the closed
theme list, and retries with a fixed delay. Failure never propagates:
callers always get a Classification, falling back to the sentinel theme.

Responsibility: Theme classification and plain-language summaries
"""

import json
import logging
import re
from typing import Any, Awaitable, Callable, Dict, Optional

from ..config import ClassifierConfig
from ..models.bill import SENTINEL_THEME, THEMES
from ..models.classification import Classification, ClassificationOutcome
from ..utils.http_client import HttpFetchClient
from ..utils.retry import RetryError, RetryPolicy, retry_async
from ..utils.text import clean_text, is_blank

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 0.8

FENCE_OPEN = re.compile(r"^\s*```(?:json|JSON)?\s*\n?")
FENCE_CLOSE = re.compile(r"\n?\s*```\s*$")

PROMPT_TEMPLATE = """Tu es un assistant qui explique les textes législatifs aux citoyens.

Classe ce texte législatif dans UNE SEULE des catégories suivantes :
{themes}

Titre : {title}
Description : {summary}
Texte intégral (extrait) : {full_text}

Réponds UNIQUEMENT avec un objet JSON valide, sans texte autour :
{{"theme": "nom exact de la catégorie", "abstract": "une phrase neutre", "summary": "explication en français clair en 2 ou 3 phrases", "pour": "principal argument en faveur", "contre": "principal argument contre", "concerne": ["groupe concerné"], "confidence": 0.0}}"""


class ClassificationError(Exception):
    """A classification attempt failed (transport, status or decode)"""


def strip_code_fences(content: str) -> str:
    """Remove surrounding ``` / ```json markers from a model reply."""
    content = FENCE_OPEN.sub("", content.strip())
    content = FENCE_CLOSE.sub("", content)
    return content.strip()


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _confidence(value: Any) -> float:
    if value is None:
        return DEFAULT_CONFIDENCE
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return DEFAULT_CONFIDENCE
    return max(0.0, min(1.0, confidence))


def parse_model_reply(content: str) -> Classification:
    """
    Turn the model's message content into a validated Classification.

    An unknown theme is replaced by the sentinel; a missing theme or
    summary is an error.

    Raises:
        ClassificationError: When the content is not usable JSON
    """
    cleaned = strip_code_fences(content)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ClassificationError(f"Model reply is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ClassificationError("Model reply is not a JSON object")

    if is_blank(data.get("theme")) or is_blank(data.get("summary")):
        raise ClassificationError("Model reply missing required fields (theme or summary)")

    theme = str(data["theme"]).strip()
    if theme not in THEMES:
        logger.warning(f"Invalid theme '{theme}', defaulting to '{SENTINEL_THEME}'")
        theme = SENTINEL_THEME

    concerne = data.get("concerne") or []
    if isinstance(concerne, str):
        concerne = [concerne]

    return Classification(
        theme=theme,
        abstract=_optional_text(data.get("abstract")),
        summary=str(data["summary"]).strip(),
        pour=_optional_text(data.get("pour")),
        contre=_optional_text(data.get("contre")),
        concerne=[str(item).strip() for item in concerne if not is_blank(str(item))],
        confidence=_confidence(data.get("confidence")),
    )


class ClassificationService:
    """
    Classify bills through a chat-completion API.

    Example:
        service = ClassificationService(settings.classifier)
        outcome = await service.classify(title, summary, full_text)
        if not outcome.succeeded:
            logger.warning(outcome.error)
        theme = outcome.classification.theme
    """

    def __init__(
        self,
        config: ClassifierConfig,
        client: Optional[HttpFetchClient] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        """
        Initialize classifier.

        Args:
            config: Classifier settings
            client: HTTP client (created with the classifier timeout if omitted)
            sleep: Awaitable sleep between retries (tests pass a no-op)
        """
        self.config = config
        self.client = client or HttpFetchClient(timeout_seconds=config.timeout_seconds)
        self._sleep = sleep

    @property
    def available(self) -> bool:
        return self.config.enabled and not is_blank(self.config.api_key)

    def build_prompt(self, title: str, summary: Optional[str], full_text: Optional[str]) -> str:
        excerpt = (full_text or "")[: self.config.max_full_text_chars]
        return PROMPT_TEMPLATE.format(
            themes=", ".join(THEMES),
            title=title,
            summary=summary or "",
            full_text=excerpt,
        )

    def build_payload(self, prompt: str) -> Dict[str, Any]:
        return {
            "model": self.config.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
        }

    def fallback(self, summary: Optional[str]) -> Classification:
        """Sentinel classification keeping the (truncated) human summary visible."""
        visible = clean_text(summary, self.config.fallback_summary_chars) if summary else None
        return Classification(theme=SENTINEL_THEME, summary=visible, confidence=0.0)

    async def classify(
        self,
        title: str,
        summary: Optional[str] = None,
        full_text: Optional[str] = None,
    ) -> ClassificationOutcome:
        """
        Classify one bill.

        Args:
            title: Bill title
            summary: Human-provided summary
            full_text: Optional full legislative text

        Returns:
            ClassificationOutcome; on failure the classification is the
            sentinel fallback and error describes the last failure
        """
        if not self.available:
            return ClassificationOutcome(
                classification=self.fallback(summary),
                error="Classifier disabled or API key missing",
            )

        if is_blank(title) or (is_blank(summary) and is_blank(full_text)):
            return ClassificationOutcome(
                classification=self.fallback(summary),
                error="Title and summary or full text are required",
            )

        payload = self.build_payload(self.build_prompt(title, summary, full_text))
        attempts = 0

        async def attempt() -> Classification:
            nonlocal attempts
            attempts += 1
            return await self._request(payload)

        try:
            classification = await retry_async(
                attempt,
                RetryPolicy.for_classifier(self.config),
                retryable_exceptions=(ClassificationError,),
                sleep=self._sleep,
                log=logger,
            )
        except RetryError as e:
            logger.error(f"Classification failed for '{title[:80]}' after {attempts} attempts: {e.last_exception}")
            return ClassificationOutcome(
                classification=self.fallback(summary),
                error=str(e.last_exception),
                attempts=attempts,
            )

        logger.info(
            f"Classified '{title[:80]}' as '{classification.theme}' "
            f"(confidence {classification.confidence:.2f})"
        )
        return ClassificationOutcome(classification=classification, attempts=attempts)

    async def _request(self, payload: Dict[str, Any]) -> Classification:
        result = await self.client.post_json(
            self.config.api_url,
            payload,
            headers={"Authorization": f"Bearer {self.config.api_key}"},
            timeout_seconds=self.config.timeout_seconds,
        )
        if not result.ok:
            raise ClassificationError(f"{result.error} {result.text[:200]}".strip())

        try:
            data = json.loads(result.content)
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ClassificationError(f"Invalid API response structure: {e}") from e

        if not isinstance(content, str):
            raise ClassificationError("Invalid API response structure: content is not text")

        return parse_model_reply(content)

    async def close(self) -> None:
        await self.client.close()
