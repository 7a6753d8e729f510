"""Auth Pydantic schemas for request / response validation."""


import uuid
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from hrms.common.constants import PositionKind


# ── Requests ────────────────────────────────────────────────────────

class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)


# ── Embedded / Shared ──────────────────────────────────────────────

class UserInfo(BaseModel):
    id: uuid.UUID
    name: str
    email: str
    role: str
    position: PositionKind


class DeptBrief(BaseModel):
    id: uuid.UUID
    name: str


# ── Responses ───────────────────────────────────────────────────────

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserInfo


class MeResponse(BaseModel):
    id: uuid.UUID
    name: str
    email: str
    role: str
    position: PositionKind
    permissions: list[str]
    department: Optional[DeptBrief] = None
    manager_id: Optional[uuid.UUID] = None
    direct_reports_count: int
