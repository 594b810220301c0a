"""
Authenticator - verifies a submitted credential pair.

Check order matters: unknown login and wrong password are reported the
same way, while locked and disabled accounts are reported distinctly.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel

from booknet.auth.passwords import PasswordHasher
from booknet.auth.users import UserStore
from booknet.core.errors import (
    AccountDisabledError,
    AccountLockedError,
    InvalidCredentialsError,
)

logger = logging.getLogger(__name__)


class VerifiedIdentity(BaseModel):
    """Result of a successful authentication."""
    id: str
    email: str
    full_name: str
    authorities: list[str]


class Authenticator:
    
    def __init__(self, users: UserStore, hasher: PasswordHasher):
        self.users = users
        self.hasher = hasher
        # Verified against when the login key is unknown, so that path
        # costs the same as a wrong password
        self._dummy_hash = hasher.hash("booknet-timing-equalizer")
    
    async def authenticate(self, email: str, password: str) -> VerifiedIdentity:
        """
        Authenticate by email and password.
        
        Raises:
            InvalidCredentialsError: Unknown email or wrong password
            AccountLockedError: Account is locked
            AccountDisabledError: Account has not been activated / was disabled
        """
        identity = await self.users.get_by_email(email)
        if identity is None:
            self.hasher.verify(password, self._dummy_hash)
            logger.warning("Authentication failed: bad credentials")
            raise InvalidCredentialsError()
        
        if identity.is_locked:
            logger.warning(f"Authentication refused, account locked: {identity.id}")
            raise AccountLockedError()
        
        if not identity.is_enabled:
            logger.warning(f"Authentication refused, account disabled: {identity.id}")
            raise AccountDisabledError()
        
        if not self.hasher.verify(password, identity.password_hash):
            logger.warning("Authentication failed: bad credentials")
            raise InvalidCredentialsError()
        
        logger.info(f"Authenticated: {identity.id}")
        return VerifiedIdentity(
            id=identity.id,
            email=identity.email,
            full_name=identity.full_name,
            authorities=sorted(identity.authorities),
        )
