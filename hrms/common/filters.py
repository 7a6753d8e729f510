"""Case-insensitive search helper for list endpoints."""

from __future__ import annotations

from typing import Any, Optional, Sequence

from sqlalchemy import Select, or_
from sqlalchemy.orm import InstrumentedAttribute


def apply_search(
    query: Select,
    model: Any,
    search: Optional[str],
    fields: Sequence[str],
) -> Select:
    """OR together ``ILIKE %search%`` over *fields*; blank search is a no-op."""
    term = (search or "").strip()
    if not term:
        return query

    conditions = [
        col.ilike(f"%{term}%")
        for col in (_get_column(model, name) for name in fields)
        if col is not None
    ]
    if not conditions:
        return query
    return query.where(or_(*conditions))


def _get_column(model: Any, name: str) -> Optional[InstrumentedAttribute]:
    attr = getattr(model, name, None)
    if isinstance(attr, InstrumentedAttribute):
        return attr
    return None
