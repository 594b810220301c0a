"""
Credential store.

Identity and role records on top of MetadataStorage. Login keys (emails)
are unique and compared lower-cased.
"""

from __future__ import annotations

import logging

from booknet.core.errors import ConflictError, EntityNotFoundError
from booknet.core.models import Identity, RoleRecord
from booknet.storage import Collections, MetadataStorage

logger = logging.getLogger(__name__)


class UserStore:
    """Durable identity records."""
    
    def __init__(self, metadata: MetadataStorage):
        self.metadata = metadata
    
    # -------------------------------------------------------------------------
    # Identities
    # -------------------------------------------------------------------------
    
    async def get_by_id(self, user_id: str) -> Identity | None:
        data = await self.metadata.get(Collections.USERS, user_id)
        return Identity.model_validate(data) if data else None
    
    async def get_by_email(self, email: str) -> Identity | None:
        rows = await self.metadata.query(
            Collections.USERS, {"email": email.lower()}, limit=1
        )
        return Identity.model_validate(rows[0]) if rows else None
    
    async def require(self, user_id: str) -> Identity:
        identity = await self.get_by_id(user_id)
        if identity is None:
            raise EntityNotFoundError(f"No user found with ID:: {user_id}")
        return identity
    
    async def create(self, identity: Identity) -> Identity:
        identity.email = identity.email.lower()
        if await self.get_by_email(identity.email):
            raise ConflictError("Email already registered")
        await self.save(identity)
        logger.info(f"Identity created: {identity.id}")
        return identity
    
    async def save(self, identity: Identity) -> None:
        await self.metadata.save(Collections.USERS, identity.id, identity.model_dump())
    
    # -------------------------------------------------------------------------
    # Roles
    # -------------------------------------------------------------------------
    
    async def get_role(self, name: str) -> RoleRecord | None:
        data = await self.metadata.get(Collections.ROLES, name)
        return RoleRecord.model_validate(data) if data else None
    
    async def ensure_role(self, name: str) -> RoleRecord:
        role = await self.get_role(name)
        if role is None:
            role = RoleRecord(name=name)
            await self.metadata.save(Collections.ROLES, name, role.model_dump())
            logger.info(f"Role initialized: {name}")
        return role
