"""Organisational position as a tagged variant.

An employee is exactly one of ``Ceo``, ``DepartmentHead(department_id)`` or
``IndividualContributor``. The ORM stores the tag in a single enum column,
so "CEO and department head at once" cannot be represented.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Optional, Union

from hrms.common.constants import PositionKind


@dataclass(frozen=True)
class Ceo:
    kind = PositionKind.ceo


@dataclass(frozen=True)
class DepartmentHead:
    department_id: uuid.UUID
    kind = PositionKind.department_head


@dataclass(frozen=True)
class IndividualContributor:
    kind = PositionKind.individual_contributor


PositionVariant = Union[Ceo, DepartmentHead, IndividualContributor]


class Position:
    """Factory helpers for position variants."""

    @staticmethod
    def of(kind: PositionKind, department_id: Optional[uuid.UUID]) -> PositionVariant:
        if kind == PositionKind.ceo:
            return Ceo()
        if kind == PositionKind.department_head:
            if department_id is None:
                raise ValueError("A department head must belong to a department")
            return DepartmentHead(department_id)
        return IndividualContributor()

    @staticmethod
    def from_flags(*, is_ceo: bool, is_dept_head: bool) -> PositionKind:
        """Translate the request-level boolean pair into a position kind."""
        if is_ceo and is_dept_head:
            raise ValueError("An employee cannot be both CEO and department head")
        if is_ceo:
            return PositionKind.ceo
        if is_dept_head:
            return PositionKind.department_head
        return PositionKind.individual_contributor
