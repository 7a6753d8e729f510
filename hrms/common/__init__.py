"""Common module — shared utilities for the HRMS backend."""

from hrms.common.audit import AuditTrail, create_audit_entry
from hrms.common.constants import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    PERMISSIONS,
    PositionKind,
    UserRole,
)
from hrms.common.exceptions import (
    AppException,
    AuthenticationException,
    ConflictError,
    ForbiddenException,
    NotFoundException,
    UnauthorizedException,
    UnsupportedOperationException,
    ValidationException,
    register_exception_handlers,
)
from hrms.common.filters import apply_search
from hrms.common.pagination import (
    PaginationMeta,
    PaginationParams,
    paginate,
)

__all__ = [
    # Audit
    "AuditTrail",
    "create_audit_entry",
    # Constants / Enums
    "PositionKind",
    "UserRole",
    "PERMISSIONS",
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    # Exceptions
    "AppException",
    "AuthenticationException",
    "ConflictError",
    "ForbiddenException",
    "NotFoundException",
    "UnauthorizedException",
    "UnsupportedOperationException",
    "ValidationException",
    "register_exception_handlers",
    # Filters
    "apply_search",
    # Pagination
    "PaginationMeta",
    "PaginationParams",
    "paginate",
]
