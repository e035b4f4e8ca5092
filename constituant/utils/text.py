"""
Text and field helpers shared by the Normalizer and services.

Responsibility: Clean, truncate, parse and pick loosely-typed source values
"""

from __future__ import annotations

import hashlib
import html
import re
import unicodedata
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Iterable, Mapping, Optional

from bs4 import BeautifulSoup

_WHITESPACE_RE = re.compile(r"\s+")
_SENTENCE_END_RE = re.compile(r"(?<=[.!?])\s")

_DATE_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
    "%d/%m/%Y %H:%M:%S",
    "%d/%m/%Y %H:%M",
    "%d/%m/%Y",
    "%d-%m-%Y",
    "%Y/%m/%d",
)

_FRENCH_MONTHS = {
    "janvier": 1,
    "février": 2,
    "fevrier": 2,
    "mars": 3,
    "avril": 4,
    "mai": 5,
    "juin": 6,
    "juillet": 7,
    "août": 8,
    "aout": 8,
    "septembre": 9,
    "octobre": 10,
    "novembre": 11,
    "décembre": 12,
    "decembre": 12,
}

_FRENCH_DATE_RE = re.compile(
    r"^(?:[a-zéû]+\s+)?(\d{1,2})(?:er)?\s+([a-zéûè]+)\s+(\d{4})$",
    re.IGNORECASE,
)
_ISO_PREFIX_RE = re.compile(r"(\d{4})-(\d{2})-(\d{2})(?:[T ](\d{2}):(\d{2})(?::(\d{2}))?)?")


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


def clean_text(text: Any, max_length: Optional[int] = None) -> Optional[str]:
    """
    Collapse whitespace and truncate.

    Args:
        text: Value to clean (non-strings are converted)
        max_length: Hard limit; longer text is cut to max_length - 3 plus "..."

    Returns:
        Cleaned text, or None when nothing remains
    """
    if text is None:
        return None
    text = collapse_whitespace(html.unescape(str(text)))
    if not text:
        return None
    if max_length and len(text) > max_length:
        text = text[: max_length - 3].rstrip() + "..."
    return text


def strip_html(content: Optional[str]) -> str:
    """Convert HTML content to plain text."""
    if not content:
        return ""
    soup = BeautifulSoup(content, "html.parser")
    for tag in soup(["script", "style"]):
        tag.decompose()
    return collapse_whitespace(soup.get_text(" ", strip=True))


def first_sentence(content: Optional[str], max_length: int = 500) -> Optional[str]:
    """First sentence of an HTML or plain text block, bounded in length."""
    text = strip_html(content)
    if not text:
        return None
    parts = _SENTENCE_END_RE.split(text, maxsplit=1)
    return clean_text(parts[0], max_length)


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, dict, tuple)):
        return len(value) == 0
    return False


def pick_field(record: Mapping[str, Any], candidates: Iterable[str]) -> Optional[Any]:
    """
    Return the first non-blank value among candidate keys.

    Keys are tried in order, exactly first, then case-insensitively.
    Blank strings and empty containers count as absent.
    """
    lowered = None
    for key in candidates:
        if key in record and not is_blank(record[key]):
            return record[key]
        if lowered is None:
            lowered = {str(k).lower(): v for k, v in record.items()}
        value = lowered.get(key.lower())
        if not is_blank(value):
            return value
    return None


def _to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def parse_datetime(value: Any) -> Optional[datetime]:
    """
    Parse a date string from any of the known source formats.

    Order: ISO-8601, RFC 2822 (RSS pubDate), fixed numeric formats,
    French long dates ("12 mars 2025"), then an ISO prefix found anywhere
    in the string. Timezone-aware results are converted to naive UTC.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return _to_naive_utc(value)
    text = str(value).strip()
    if not text:
        return None

    iso_candidate = text[:-1] + "+00:00" if text.endswith("Z") else text
    try:
        return _to_naive_utc(datetime.fromisoformat(iso_candidate))
    except ValueError:
        pass

    try:
        return _to_naive_utc(parsedate_to_datetime(text))
    except (TypeError, ValueError, IndexError):
        pass

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue

    match = _FRENCH_DATE_RE.match(text.lower())
    if match:
        day, month_name, year = match.groups()
        month = _FRENCH_MONTHS.get(month_name)
        if month:
            try:
                return datetime(int(year), month, int(day))
            except ValueError:
                return None

    match = _ISO_PREFIX_RE.search(text)
    if match:
        year, month, day, hour, minute, second = match.groups()
        try:
            return datetime(
                int(year), int(month), int(day),
                int(hour or 0), int(minute or 0), int(second or 0),
            )
        except ValueError:
            return None

    return None


def stable_id(text: str) -> str:
    """Deterministic identifier for records that carry none."""
    return hashlib.md5(text.encode("utf-8")).hexdigest()


def slugify(text: str, max_length: int = 40) -> str:
    """
    Lowercase ASCII slug.

    Accents are folded, any run of characters outside [a-z0-9] becomes a
    single dash, and the result is cut to max_length without trailing dashes.
    """
    folded = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    slug = re.sub(r"[^a-z0-9]+", "-", folded.lower()).strip("-")
    return slug[:max_length].rstrip("-")
