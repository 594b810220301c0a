"""
Account administration.

Admins can lock and unlock accounts, enable and disable them, and grant
roles. Changes take effect on the identity's next request, since the
request authorizer reloads the identity for every bearer token.
"""

from __future__ import annotations

import logging

from booknet.auth.context import AuthContext
from booknet.auth.policies import AccessPolicyEvaluator, Operation
from booknet.auth.users import UserStore
from booknet.core.audit import stamp_modified
from booknet.core.errors import EntityNotFoundError
from booknet.core.models import Identity, Role
from booknet.core.utils import Clock, utc_now

logger = logging.getLogger(__name__)


MANAGE_USERS = Operation("user.manage", required_role=Role.ADMIN)


class UserAdminService:
    
    def __init__(
        self,
        users: UserStore,
        policies: AccessPolicyEvaluator,
        clock: Clock = utc_now,
    ):
        self.users = users
        self.policies = policies
        self._clock = clock
    
    async def _update(self, user_id: str, ctx: AuthContext, **changes) -> Identity:
        self.policies.enforce(ctx, MANAGE_USERS)
        identity = await self.users.require(user_id)
        for key, value in changes.items():
            setattr(identity, key, value)
        stamp_modified(identity, ctx, self._clock)
        await self.users.save(identity)
        logger.info(f"User {user_id} updated by {ctx.user_id}: {changes}")
        return identity
    
    async def lock(self, user_id: str, ctx: AuthContext) -> Identity:
        return await self._update(user_id, ctx, account_locked=True)
    
    async def unlock(self, user_id: str, ctx: AuthContext) -> Identity:
        return await self._update(user_id, ctx, account_locked=False)
    
    async def enable(self, user_id: str, ctx: AuthContext) -> Identity:
        return await self._update(user_id, ctx, enabled=True)
    
    async def disable(self, user_id: str, ctx: AuthContext) -> Identity:
        return await self._update(user_id, ctx, enabled=False)
    
    async def grant_role(self, user_id: str, role: str, ctx: AuthContext) -> Identity:
        """Add a seeded role to an identity. Granting a held role is a no-op."""
        self.policies.enforce(ctx, MANAGE_USERS)
        if await self.users.get_role(role) is None:
            raise EntityNotFoundError(f"No role found with name:: {role}")
        identity = await self.users.require(user_id)
        if role in identity.roles:
            return identity
        return await self._update(user_id, ctx, roles=[*identity.roles, role])
