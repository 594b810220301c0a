"""
Error taxonomy.

Every failure the application raises on purpose derives from BookNetError.
The HTTP layer maps these to status codes in one place
(booknet.api.errors); nothing below the API imports FastAPI exceptions.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class BusinessErrorCode(int, Enum):
    """Numeric codes surfaced to clients alongside authentication failures."""
    
    NO_CODE = 0
    ACCOUNT_LOCKED = 302
    ACCOUNT_DISABLED = 303
    BAD_CREDENTIALS = 304
    
    @property
    def description(self) -> str:
        return _BUSINESS_DESCRIPTIONS[self]


_BUSINESS_DESCRIPTIONS = {
    BusinessErrorCode.NO_CODE: "No code",
    BusinessErrorCode.ACCOUNT_LOCKED: "User account is locked",
    BusinessErrorCode.ACCOUNT_DISABLED: "User account is disabled",
    BusinessErrorCode.BAD_CREDENTIALS: "Login and / or password is incorrect",
}


class BookNetError(Exception):
    """Base exception for all booknet errors."""
    
    status_code: int = 500
    code: str = "internal_error"
    business_code: BusinessErrorCode | None = None
    
    def __init__(self, message: str | None = None, *, code: str | None = None):
        self.message = message or self.default_message()
        if code is not None:
            self.code = code
        super().__init__(self.message)
    
    def default_message(self) -> str:
        return "Internal error"


# =============================================================================
# Authentication (401)
# =============================================================================


class AuthenticationError(BookNetError):
    """Caller could not be authenticated."""
    
    status_code = 401
    code = "unauthenticated"
    
    def default_message(self) -> str:
        return "Authentication required"


class UnauthenticatedError(AuthenticationError):
    """Operation needs an identity and the request carries none."""


class InvalidCredentialsError(AuthenticationError):
    code = "invalid_credentials"
    business_code = BusinessErrorCode.BAD_CREDENTIALS
    
    def default_message(self) -> str:
        # Same text whether the login key or the password was wrong
        return "Login and / or password is incorrect"


class AccountLockedError(AuthenticationError):
    code = "account_locked"
    business_code = BusinessErrorCode.ACCOUNT_LOCKED
    
    def default_message(self) -> str:
        return "User account is locked"


class AccountDisabledError(AuthenticationError):
    code = "account_disabled"
    business_code = BusinessErrorCode.ACCOUNT_DISABLED
    
    def default_message(self) -> str:
        return "User account is disabled"


class TokenError(AuthenticationError):
    """Base exception for bearer token errors."""
    
    code = "invalid_token"
    
    def default_message(self) -> str:
        return "Invalid token"


class TokenExpiredError(TokenError):
    """Token has expired."""
    
    code = "token_expired"
    
    def default_message(self) -> str:
        return "Token expired"


class TokenInvalidError(TokenError):
    """Token is invalid (malformed, badly signed, or unresolvable)."""


class TokenMalformedError(TokenInvalidError):
    code = "token_malformed"
    
    def default_message(self) -> str:
        return "Malformed token"


class TokenSignatureError(TokenInvalidError):
    code = "bad_signature"
    
    def default_message(self) -> str:
        return "Token signature verification failed"


class TokenRevokedError(TokenError):
    code = "token_revoked"
    
    def default_message(self) -> str:
        return "Token has been revoked"


# =============================================================================
# Authorization (403)
# =============================================================================


class AccessDeniedError(BookNetError):
    status_code = 403
    code = "forbidden"
    
    def default_message(self) -> str:
        return "You are not allowed to perform this operation"


class ForbiddenError(AccessDeniedError):
    """Caller lacks a required role."""


class OperationNotPermittedError(AccessDeniedError):
    """Ownership or state precondition violated."""
    
    code = "operation_not_permitted"
    
    def __init__(
        self,
        message: str | None = None,
        *,
        operation: str | None = None,
        resource: str | None = None,
    ):
        self.operation = operation
        self.resource = resource
        super().__init__(message)
    
    def default_message(self) -> str:
        return "Operation not permitted"


# =============================================================================
# Request / state errors
# =============================================================================


class ValidationError(BookNetError):
    status_code = 400
    code = "validation_error"
    
    def __init__(self, message: str | None = None, *, errors: dict[str, str] | None = None):
        self.errors: dict[str, Any] = errors or {}
        super().__init__(message)
    
    def default_message(self) -> str:
        return "Validation failed"


class EntityNotFoundError(BookNetError):
    status_code = 404
    code = "not_found"
    
    def default_message(self) -> str:
        return "Entity not found"


class ConflictError(BookNetError):
    status_code = 409
    code = "conflict"
    
    def default_message(self) -> str:
        return "Conflicting state"


class InvalidActivationTokenError(BookNetError):
    status_code = 400
    code = "invalid_activation_token"
    
    def default_message(self) -> str:
        return "Invalid activation token"


class ActivationTokenExpiredError(InvalidActivationTokenError):
    code = "activation_token_expired"
    
    def default_message(self) -> str:
        return "Activation token has expired. A new token has been sent to the same email address"
