"""
Error taxonomy.

Every domain failure is an ``HTTPException`` subclass so services can
raise it directly (FastAPI renders it), while still carrying a stable
numeric code and, for conflicts, the offending field:

    {"detail": {"code": 3100, "message": "Role already exists", "field": "name"}}

401 (who are you?) and 403 (you may not) are never conflated.
"""

import enum

from fastapi import HTTPException, status


class ErrorCode(int, enum.Enum):
    # General
    UNKNOWN_ERROR = 1001
    INVALID_REQUEST = 1002
    VALIDATION_ERROR = 1003
    NOT_FOUND = 1004
    INTERNAL_ERROR = 1005

    # Authentication
    UNAUTHORIZED = 2000
    INVALID_TOKEN = 2001
    TOKEN_EXPIRED = 2002
    INVALID_CREDENTIALS = 2003
    ACCOUNT_DISABLED = 2004
    ACCOUNT_NOT_FOUND = 2005

    # Authorization
    FORBIDDEN = 2100
    INSUFFICIENT_PERMISSIONS = 2101
    ROLE_NOT_FOUND = 2102

    # Users
    USER_NOT_FOUND = 3000
    USER_ALREADY_EXISTS = 3001
    EMAIL_ALREADY_EXISTS = 3002
    USERNAME_ALREADY_EXISTS = 3003

    # Roles
    ROLE_ALREADY_EXISTS = 3100
    CANNOT_MODIFY_SYSTEM_ROLE = 3101
    ROLE_IN_USE = 3102

    # Permissions
    PERMISSION_NOT_FOUND = 3200
    PERMISSION_ALREADY_EXISTS = 3201

    # Generic resources (routes, join references)
    RESOURCE_NOT_FOUND = 4000
    RESOURCE_ALREADY_EXISTS = 4001
    RESOURCE_IN_USE = 4002
    REFERENCE_NOT_FOUND = 4003


class AppError(HTTPException):
    """Base class — subclasses fix the HTTP status and a default code."""

    status_code_default: int = status.HTTP_400_BAD_REQUEST
    code_default: ErrorCode = ErrorCode.UNKNOWN_ERROR

    def __init__(
        self,
        message: str,
        code: ErrorCode | None = None,
        field: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.code = code or self.code_default
        self.message = message
        self.field = field
        detail: dict = {"code": int(self.code), "message": message}
        if field is not None:
            detail["field"] = field
        super().__init__(status_code=self.status_code_default, detail=detail, headers=headers)


class UnauthenticatedError(AppError):
    status_code_default = status.HTTP_401_UNAUTHORIZED
    code_default = ErrorCode.UNAUTHORIZED

    def __init__(self, message: str = "Not authenticated", code: ErrorCode | None = None) -> None:
        super().__init__(message, code=code, headers={"WWW-Authenticate": "Bearer"})


class ForbiddenError(AppError):
    status_code_default = status.HTTP_403_FORBIDDEN
    code_default = ErrorCode.INSUFFICIENT_PERMISSIONS

    def __init__(self, message: str = "Insufficient permissions") -> None:
        super().__init__(message)


class NotFoundError(AppError):
    status_code_default = status.HTTP_404_NOT_FOUND
    code_default = ErrorCode.NOT_FOUND


class ConflictError(AppError):
    """Uniqueness violation — always names the offending field."""

    status_code_default = status.HTTP_409_CONFLICT
    code_default = ErrorCode.RESOURCE_ALREADY_EXISTS

    def __init__(self, message: str, field: str, code: ErrorCode | None = None) -> None:
        super().__init__(message, code=code, field=field)


class ReferentialIntegrityError(AppError):
    """Still-referenced delete, or a reference to something that does not exist."""

    status_code_default = status.HTTP_409_CONFLICT
    code_default = ErrorCode.RESOURCE_IN_USE


class ValidationError(AppError):
    status_code_default = status.HTTP_400_BAD_REQUEST
    code_default = ErrorCode.VALIDATION_ERROR
