"""
Seed data loader.

Reads roles and bootstrap accounts from YAML and makes sure they exist.
Runs at startup; already present roles and accounts are left untouched.

Example (config/seed.yaml):

    roles:
      - USER
      - ADMIN
    users:
      - email: admin@example.com
        firstname: Admin
        lastname: User
        password: admin123
        roles: [ADMIN]
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from booknet.auth.passwords import PasswordHasher
from booknet.auth.users import UserStore
from booknet.core.audit import stamp_created
from booknet.core.models import Identity, Role

logger = logging.getLogger(__name__)


class SeedLoader:
    """Applies a seed file to the credential store."""
    
    def __init__(self, users: UserStore, hasher: PasswordHasher):
        self.users = users
        self.hasher = hasher
    
    @staticmethod
    def read(path: Path | str) -> dict[str, Any]:
        """Load a seed file. A missing file yields the built-in roles only."""
        path = Path(path)
        if not path.exists():
            logger.warning(f"Seed file {path} not found, seeding default roles only")
            return {"roles": [r.value for r in Role], "users": []}
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return {"roles": data.get("roles") or [], "users": data.get("users") or []}
    
    async def apply(self, data: dict[str, Any]) -> dict[str, int]:
        counts = {"roles": 0, "users": 0}
        
        for name in data.get("roles", []):
            if await self.users.get_role(name) is None:
                counts["roles"] += 1
            await self.users.ensure_role(name)
        
        for entry in data.get("users", []):
            if await self.users.get_by_email(entry["email"]):
                continue
            roles = entry.get("roles") or [Role.USER.value]
            for role in roles:
                await self.users.ensure_role(role)
            identity = Identity(
                email=entry["email"],
                firstname=entry.get("firstname", ""),
                lastname=entry.get("lastname", ""),
                password_hash=self.hasher.hash(entry["password"]),
                roles=list(roles),
                enabled=entry.get("enabled", True),
                account_locked=entry.get("account_locked", False),
            )
            stamp_created(identity, None)
            await self.users.create(identity)
            counts["users"] += 1
        
        return counts
    
    async def load(self, path: Path | str) -> dict[str, int]:
        counts = await self.apply(self.read(path))
        logger.info(f"Seeded {counts['roles']} roles and {counts['users']} users from {path}")
        return counts
