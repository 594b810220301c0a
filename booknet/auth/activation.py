"""
Account activation tokens.

A new identity receives a short numeric code by email. Consuming the
code enables the identity. Only the most recently issued code is usable:
issuing a fresh one invalidates earlier unconsumed codes rather than
leaving them to pile up. Presenting an expired code invalidates it and
sends a replacement.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Awaitable, Callable, Protocol

from booknet.auth.users import UserStore
from booknet.core.errors import ActivationTokenExpiredError, InvalidActivationTokenError
from booknet.core.models import ActivationToken, Identity
from booknet.core.utils import Clock, generate_numeric_code, utc_now
from booknet.integrations.email import dispatch
from booknet.storage import Collections, MetadataStorage

logger = logging.getLogger(__name__)

# Codes are short, so collisions among live codes are possible
MAX_CODE_ATTEMPTS = 10


class ActivationMailer(Protocol):
    def send_activation(self, email: str, name: str, activation_code: str) -> Awaitable[bool]: ...


class ActivationService:
    
    def __init__(
        self,
        metadata: MetadataStorage,
        users: UserStore,
        mailer: ActivationMailer,
        ttl: timedelta = timedelta(minutes=15),
        code_length: int = 6,
        clock: Clock = utc_now,
        background: Callable = dispatch,
    ):
        self.metadata = metadata
        self.users = users
        self.mailer = mailer
        self.ttl = ttl
        self.code_length = code_length
        self._clock = clock
        self._background = background
    
    async def _save(self, token: ActivationToken) -> None:
        await self.metadata.save(Collections.ACTIVATION_TOKENS, token.id, token.model_dump())
    
    async def _usable_tokens(self, **filters) -> list[ActivationToken]:
        rows = await self.metadata.query(Collections.ACTIVATION_TOKENS, filters, limit=None)
        tokens = [ActivationToken.model_validate(r) for r in rows]
        return [t for t in tokens if t.is_usable]
    
    async def tokens_for(self, user_id: str) -> list[ActivationToken]:
        """All tokens ever issued to a user, oldest first."""
        rows = await self.metadata.query(
            Collections.ACTIVATION_TOKENS, {"user_id": user_id}, limit=None
        )
        return sorted(
            (ActivationToken.model_validate(r) for r in rows),
            key=lambda t: t.created_at,
        )
    
    async def _unique_code(self) -> str:
        for _ in range(MAX_CODE_ATTEMPTS):
            code = generate_numeric_code(self.code_length)
            if not await self._usable_tokens(token=code):
                return code
        raise RuntimeError("Could not allocate a unique activation code")
    
    async def issue(self, identity: Identity) -> ActivationToken:
        """Create a fresh token, invalidating any earlier live ones."""
        now = self._clock()
        for old in await self._usable_tokens(user_id=identity.id):
            old.invalidated_at = now
            await self._save(old)
        
        token = ActivationToken(
            token=await self._unique_code(),
            user_id=identity.id,
            created_at=now,
            expires_at=now + self.ttl,
        )
        await self._save(token)
        logger.info(f"Activation token issued for {identity.id}, expires {token.expires_at.isoformat()}")
        return token
    
    async def send(self, identity: Identity) -> ActivationToken:
        """Issue a token and mail it without waiting for delivery."""
        token = await self.issue(identity)
        self._background(
            self.mailer.send_activation(identity.email, identity.full_name, token.token),
            name=f"activation-email:{identity.id}",
        )
        return token
    
    async def activate(self, code: str) -> Identity:
        """
        Consume `code` and enable its identity.
        
        Raises:
            InvalidActivationTokenError: Unknown or already used code
            ActivationTokenExpiredError: Code expired; a new one was sent
        """
        candidates = await self._usable_tokens(token=code)
        if not candidates:
            raise InvalidActivationTokenError("Invalid activation token")
        token = candidates[0]
        now = self._clock()
        
        identity = await self.users.require(token.user_id)
        
        if token.is_expired(now):
            logger.info(f"Expired activation token presented for {identity.id}, reissuing")
            await self.send(identity)  # invalidates `token` as part of issuing
            raise ActivationTokenExpiredError()
        
        identity.enabled = True
        identity.modified_at = now
        identity.modified_by = identity.id
        await self.users.save(identity)
        
        token.validated_at = now
        await self._save(token)
        logger.info(f"Account activated: {identity.id}")
        return identity
