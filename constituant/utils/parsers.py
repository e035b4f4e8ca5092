"""
Format parsers for source payloads.

Each parser turns raw bytes into a loosely-typed record set and raises
ParseError on malformed input so adapters can move to their next
fallback endpoint.

Responsibility: JSON, semicolon CSV and RSS/Atom decoding
"""

from __future__ import annotations

import csv
import io
import json
import xml.etree.ElementTree as ET
from typing import Any, Dict, List, Optional

_CSV_ENCODINGS = ("utf-8-sig", "utf-8", "cp1252", "latin-1")
_ATOM_NS = "{http://www.w3.org/2005/Atom}"


class ParseError(ValueError):
    """Raised when a payload cannot be decoded into records"""


def _decode(content: bytes | str, encodings=("utf-8-sig", "utf-8")) -> str:
    if isinstance(content, str):
        return content
    for encoding in encodings:
        try:
            return content.decode(encoding)
        except UnicodeDecodeError:
            continue
    return content.decode("utf-8", errors="replace")


def parse_json(content: bytes | str) -> Any:
    """Decode a JSON document."""
    text = _decode(content).strip()
    if not text:
        raise ParseError("Empty JSON payload")
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise ParseError(f"Invalid JSON: {exc.msg} at position {exc.pos}") from exc


def parse_csv(content: bytes | str, delimiter: str = ";") -> List[Dict[str, str]]:
    """
    Decode a delimited export into one dict per row.

    Encodings are tried in order (utf-8-sig, utf-8, cp1252, latin-1).
    Header names and cells are stripped; blank lines are skipped.
    """
    text = _decode(content, _CSV_ENCODINGS)
    if not text.strip():
        raise ParseError("Empty CSV payload")

    reader = csv.DictReader(io.StringIO(text, newline=""), delimiter=delimiter)
    if not reader.fieldnames or len(reader.fieldnames) < 2:
        raise ParseError("CSV payload has no usable header row")

    rows: List[Dict[str, str]] = []
    try:
        for row in reader:
            cleaned = {
                (key or "").strip(): (value or "").strip()
                for key, value in row.items()
                if key is not None and not isinstance(value, list)
            }
            if not any(cleaned.values()):
                continue
            rows.append(cleaned)
    except csv.Error as exc:
        raise ParseError(f"Invalid CSV: {exc}") from exc
    return rows


def _child_text(element: ET.Element, *names: str) -> Optional[str]:
    for name in names:
        child = element.find(name)
        if child is None:
            continue
        if child.text and child.text.strip():
            return child.text.strip()
        href = child.get("href")
        if href:
            return href.strip()
    return None


def parse_rss(content: bytes | str) -> List[Dict[str, Optional[str]]]:
    """
    Decode an RSS 2.0 or Atom feed into flat item dicts.

    Keys: title, description, link, pubDate, guid (Atom entries are
    mapped onto the same keys).
    """
    if isinstance(content, str):
        content = content.encode("utf-8")
    if not content.strip():
        raise ParseError("Empty XML payload")
    try:
        root = ET.fromstring(content)
    except ET.ParseError as exc:
        raise ParseError(f"Invalid XML: {exc}") from exc

    items: List[Dict[str, Optional[str]]] = []

    for item in root.iter("item"):
        items.append({
            "title": _child_text(item, "title"),
            "description": _child_text(item, "description"),
            "link": _child_text(item, "link"),
            "pubDate": _child_text(item, "pubDate"),
            "guid": _child_text(item, "guid"),
        })

    if not items:
        for entry in root.iter(f"{_ATOM_NS}entry"):
            items.append({
                "title": _child_text(entry, f"{_ATOM_NS}title"),
                "description": _child_text(entry, f"{_ATOM_NS}summary", f"{_ATOM_NS}content"),
                "link": _child_text(entry, f"{_ATOM_NS}link"),
                "pubDate": _child_text(entry, f"{_ATOM_NS}updated", f"{_ATOM_NS}published"),
                "guid": _child_text(entry, f"{_ATOM_NS}id"),
            })

    if not items and root.tag not in ("rss", f"{_ATOM_NS}feed") and root.find("channel") is None:
        raise ParseError(f"Unexpected XML root element: {root.tag}")

    return items
