"""Utility helpers for stable document ids and snippet text.

This module provides:
- slugify_name: whitespace-run to underscore slugging used in document ids
- stable_doc_id: deterministic "<prefix>_<slug>" identifier for catalog entries
- join_values: render a list field (or scalar) as comma separated text
"""
import re
from typing import Any

_WHITESPACE = re.compile(r"\s+")


def slugify_name(name: str) -> str:
    """Replace each run of whitespace with a single underscore.

    Args:
        name: Catalog entry name, e.g. "Event Driven".

    Returns:
        str: Slug such as "Event_Driven". Other characters are kept as-is.
    """
    return _WHITESPACE.sub("_", name)


def stable_doc_id(prefix: str, name: str) -> str:
    """Compute the deterministic document id for a catalog entry.

    Args:
        prefix: Catalog prefix (e.g. "lang").
        name: Entry name.

    Returns:
        str: "<prefix>_<slugified-name>".
    """
    return f"{prefix}_{slugify_name(name)}"


def join_values(value: Any) -> str:
    """Render list-valued fields as "a, b, c"; scalars are stringified."""
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return str(value)
