"""
Auth context - who is making the current request.

One AuthContext is built per request by the RequestAuthorizer and hung
on `request.state.auth`. Route handlers pass it explicitly to services;
nothing reads it from a global.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from booknet.core.models import Identity, Role


@dataclass(frozen=True)
class AuthContext:
    """
    Authorization context for a request.
    
    Usage in routes:
        async def my_route(ctx: AuthContext = Depends(require_auth())):
            print(f"User {ctx.user_id} is asking")
            if ctx.has_role(Role.ADMIN):
                # do something
    """
    
    # Who
    user_id: str | None = None
    email: str | None = None
    full_name: str | None = None
    authorities: frozenset[str] = field(default_factory=frozenset)
    
    # Which token vouched for them
    token_id: str | None = None
    token_expires_at: datetime | None = None
    
    @property
    def is_authenticated(self) -> bool:
        """Is there a logged-in user?"""
        return self.user_id is not None
    
    @property
    def is_anonymous(self) -> bool:
        return self.user_id is None
    
    def has_role(self, role: Role | str) -> bool:
        name = role.value if isinstance(role, Role) else role
        return name in self.authorities
    
    def has_any_role(self, *roles: Role | str) -> bool:
        return any(self.has_role(r) for r in roles)
    
    @classmethod
    def anonymous(cls) -> AuthContext:
        """Create an anonymous context (no user)."""
        return cls()
    
    @classmethod
    def for_identity(
        cls,
        identity: Identity,
        token_id: str | None = None,
        token_expires_at: datetime | None = None,
    ) -> AuthContext:
        """Build a context from the stored identity's current state."""
        return cls(
            user_id=identity.id,
            email=identity.email,
            full_name=identity.full_name,
            authorities=identity.authorities,
            token_id=token_id,
            token_expires_at=token_expires_at,
        )
