"""
Request authorization pipeline.

Runs once per request, before routing, and resolves the bearer token
into an AuthContext. Four outcomes:

    PASS_THROUGH     path is on the exempt list; no token work at all
    UNAUTHENTICATED  no bearer token; anonymous context, later policy
                     checks deny anything that needs an identity
    AUTHENTICATED    token valid and its subject an active identity
    REJECTED         token present but malformed, badly signed, expired,
                     revoked, or naming an unusable identity → 401

Bad tokens are always rejected outright rather than downgraded to
anonymous, so clients get a distinct reason code they can act on
(e.g. refresh on `token_expired`).
"""

from __future__ import annotations

import fnmatch
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from fastapi.security.utils import get_authorization_scheme_param
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from booknet.api.errors import error_response
from booknet.auth.context import AuthContext
from booknet.auth.jwt import TokenCodec
from booknet.auth.revocation import RevocationList
from booknet.auth.users import UserStore
from booknet.core.errors import (
    AccountDisabledError,
    AccountLockedError,
    AuthenticationError,
    TokenError,
    TokenInvalidError,
    TokenMalformedError,
    TokenRevokedError,
)

logger = logging.getLogger(__name__)

BEARER_PREFIX = "bearer"


class AuthState(str, Enum):
    PASS_THROUGH = "pass_through"
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"
    REJECTED = "rejected"


@dataclass(frozen=True)
class AuthOutcome:
    state: AuthState
    context: AuthContext
    error: AuthenticationError | None = None
    
    @classmethod
    def rejected(cls, error: AuthenticationError) -> AuthOutcome:
        return cls(AuthState.REJECTED, AuthContext.anonymous(), error)


def extract_bearer(authorization: str | None) -> str | None:
    """
    Pull the token out of an Authorization header.
    
    Returns None when there is no Bearer credential at all (absent header
    or another scheme) and "" when the scheme is Bearer but the token
    part is missing.
    """
    scheme, token = get_authorization_scheme_param((authorization or "").strip())
    if scheme.lower() != BEARER_PREFIX:
        return None
    return token.strip()


class RequestAuthorizer:
    """Resolves one request's credentials into an AuthOutcome."""
    
    def __init__(
        self,
        codec: TokenCodec,
        users: UserStore,
        revocations: RevocationList | None = None,
        exempt_paths: Iterable[str] = (),
    ):
        self.codec = codec
        self.users = users
        self.revocations = revocations
        self.exempt_paths = tuple(exempt_paths)
    
    def is_exempt(self, path: str) -> bool:
        return any(fnmatch.fnmatchcase(path, pattern) for pattern in self.exempt_paths)
    
    async def authorize(self, path: str, authorization: str | None) -> AuthOutcome:
        if self.is_exempt(path):
            return AuthOutcome(AuthState.PASS_THROUGH, AuthContext.anonymous())
        
        token = extract_bearer(authorization)
        if token is None:
            return AuthOutcome(AuthState.UNAUTHENTICATED, AuthContext.anonymous())
        if not token:
            return AuthOutcome.rejected(TokenMalformedError("Empty bearer token"))
        
        try:
            claims = self.codec.decode(token)
        except TokenError as e:
            logger.info(f"Token rejected on {path}: {e.code}")
            return AuthOutcome.rejected(e)
        
        if self.revocations is not None and await self.revocations.is_revoked(claims.token_id):
            logger.info(f"Revoked token presented on {path}")
            return AuthOutcome.rejected(TokenRevokedError())
        
        identity = await self.users.get_by_email(claims.subject)
        if identity is None:
            logger.warning(f"Token subject no longer resolves on {path}")
            return AuthOutcome.rejected(TokenInvalidError("Token subject is unknown"))
        if identity.is_locked:
            return AuthOutcome.rejected(AccountLockedError())
        if not identity.is_enabled:
            return AuthOutcome.rejected(AccountDisabledError())
        
        ctx = AuthContext.for_identity(
            identity,
            token_id=claims.token_id,
            token_expires_at=claims.expires_at,
        )
        return AuthOutcome(AuthState.AUTHENTICATED, ctx)


class AuthorizationMiddleware(BaseHTTPMiddleware):
    """Installs a RequestAuthorizer in front of every route."""
    
    def __init__(self, app, authorizer: RequestAuthorizer):
        super().__init__(app)
        self.authorizer = authorizer
    
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        # Already resolved for this request (internal re-dispatch)
        if getattr(request.state, "auth", None) is not None:
            return await call_next(request)
        
        outcome = await self.authorizer.authorize(
            request.url.path,
            request.headers.get("authorization"),
        )
        
        if outcome.state == AuthState.REJECTED:
            return error_response(
                outcome.error,
                path=request.url.path,
                headers={"WWW-Authenticate": "Bearer"},
            )
        
        request.state.auth = outcome.context
        request.state.auth_state = outcome.state
        return await call_next(request)
