"""
Authentication service.

Registration, login (token issuance), activation and logout. The HTTP
routes in booknet.auth.routes are thin wrappers around this.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, EmailStr, Field

from booknet.auth.activation import ActivationService
from booknet.auth.authenticator import Authenticator
from booknet.auth.context import AuthContext
from booknet.auth.jwt import TokenCodec
from booknet.auth.passwords import PasswordHasher
from booknet.auth.revocation import RevocationList
from booknet.auth.users import UserStore
from booknet.core.audit import stamp_created
from booknet.core.models import Identity, Role

logger = logging.getLogger(__name__)


# =============================================================================
# Models
# =============================================================================

class RegistrationRequest(BaseModel):
    """User registration data."""
    firstname: str = Field(min_length=1, max_length=100)
    lastname: str = Field(min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(min_length=8)


class AuthenticationRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8)


class AuthenticationResponse(BaseModel):
    token: str


class UserResponse(BaseModel):
    """User data returned to client (no sensitive fields)."""
    id: str
    email: str
    firstname: str
    lastname: str
    roles: list[str]
    enabled: bool
    account_locked: bool
    
    @classmethod
    def from_identity(cls, identity: Identity) -> UserResponse:
        return cls(
            id=identity.id,
            email=identity.email,
            firstname=identity.firstname,
            lastname=identity.lastname,
            roles=identity.roles,
            enabled=identity.enabled,
            account_locked=identity.account_locked,
        )


# =============================================================================
# Service
# =============================================================================

class AuthService:
    
    def __init__(
        self,
        users: UserStore,
        hasher: PasswordHasher,
        authenticator: Authenticator,
        codec: TokenCodec,
        activation: ActivationService,
        revocations: RevocationList,
    ):
        self.users = users
        self.hasher = hasher
        self.authenticator = authenticator
        self.codec = codec
        self.activation = activation
        self.revocations = revocations
    
    async def register(self, request: RegistrationRequest) -> Identity:
        """Create a disabled identity and mail its activation code."""
        user_role = await self.users.get_role(Role.USER.value)
        if user_role is None:
            raise RuntimeError("ROLE USER was not initialized")
        
        identity = Identity(
            email=request.email,
            firstname=request.firstname,
            lastname=request.lastname,
            password_hash=self.hasher.hash(request.password),
            roles=[user_role.name],
            enabled=False,
            account_locked=False,
        )
        stamp_created(identity, None)
        identity = await self.users.create(identity)
        await self.activation.send(identity)
        return identity
    
    async def authenticate(self, request: AuthenticationRequest) -> AuthenticationResponse:
        verified = await self.authenticator.authenticate(request.email, request.password)
        token = self.codec.encode(
            subject=verified.email,
            authorities=verified.authorities,
            extra_claims={"fullName": verified.full_name},
        )
        return AuthenticationResponse(token=token)
    
    async def activate(self, code: str) -> Identity:
        return await self.activation.activate(code)
    
    async def logout(self, ctx: AuthContext) -> None:
        """Revoke the token the caller authenticated with."""
        if ctx.token_id and ctx.token_expires_at:
            await self.revocations.revoke(ctx.token_id, ctx.token_expires_at)
        logger.info(f"Logged out: {ctx.user_id}")
    
    async def me(self, ctx: AuthContext) -> UserResponse:
        identity = await self.users.require(ctx.user_id)
        return UserResponse.from_identity(identity)
