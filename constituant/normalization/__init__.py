"""
Normalization package for Constituant.

Maps loosely-typed source records onto the canonical BillDraft.
"""

from .normalizer import FieldMap, Normalizer, FIELD_MAPS

__all__ = [
    "FieldMap",
    "Normalizer",
    "FIELD_MAPS",
]
