"""Authorization predicates over the reporting tree.

Pure functions of (actor, target); no I/O. The service layer turns a
``False`` into the appropriate ``ForbiddenException``.
"""

from __future__ import annotations

import uuid
from typing import Optional

from hrms.org.models import Employee
from hrms.org.position import Ceo, DepartmentHead


def is_ceo_actor(actor: Optional[Employee]) -> bool:
    return actor is not None and isinstance(actor.position, Ceo)


def is_dept_head_actor(actor: Optional[Employee]) -> bool:
    return actor is not None and isinstance(actor.position, DepartmentHead)


def heads_department(actor: Optional[Employee], department_id: Optional[uuid.UUID]) -> bool:
    """True when *actor* is the department head of ``department_id``."""
    if department_id is None or not is_dept_head_actor(actor):
        return False
    return actor.position.department_id == department_id


def can_modify(actor: Optional[Employee], target: Employee) -> bool:
    """CEO, the target's direct manager, or the head of the target's department."""
    if actor is None:
        return False
    if is_ceo_actor(actor):
        return True
    if target.manager_id is not None and target.manager_id == actor.id:
        return True
    return heads_department(actor, target.department_id)


def can_view(actor: Optional[Employee], target: Employee) -> bool:
    """CEO, the target themself, or the head of the target's department."""
    if actor is None:
        return False
    if is_ceo_actor(actor) or actor.id == target.id:
        return True
    return heads_department(actor, target.department_id)
