"""
Public bill identifiers.

Bill ids are readable slugs such as "fr-loi-climat-et-resilience-2025".
They are assigned once and never change.
"""

from datetime import datetime
from typing import Optional

from ..db.repositories import BillRepository
from ..models.bill import Level
from ..utils.text import slugify

SLUG_MAX_LENGTH = 40


def base_bill_id(level: str, title: str, now: datetime) -> str:
    """Slug for a title without the uniqueness suffix"""
    prefix = "eu" if level == Level.EU.value else "fr"
    slug = slugify(title, max_length=SLUG_MAX_LENGTH) or "texte"
    return f"{prefix}-{slug}-{now.year}"


async def generate_bill_id(
    repo: BillRepository,
    level: str,
    title: str,
    now: Optional[datetime] = None,
) -> str:
    """
    Generate an unused bill id.

    A taken slug gets the first free numeric suffix ("-2", "-3", ...).

    Args:
        repo: Repository bound to the caller's session
        level: "eu" or "france"
        title: Bill title
        now: Reference time (defaults to utcnow)
    """
    now = now or datetime.utcnow()
    base = base_bill_id(level, title, now)
    candidate = base
    suffix = 1
    while await repo.exists(candidate):
        suffix += 1
        candidate = f"{base}-{suffix}"
    return candidate
