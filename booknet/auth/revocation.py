"""
Token revocation.

A denylist of token ids (jti) kept in CacheStorage. Entries expire with
the token they revoke, so the list never outgrows the live token set.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime

from booknet.core.utils import Clock, utc_now
from booknet.storage import CacheStorage

logger = logging.getLogger(__name__)

KEY_PREFIX = "revoked:"


class RevocationList:
    
    def __init__(self, cache: CacheStorage, clock: Clock = utc_now):
        self.cache = cache
        self._clock = clock
    
    async def revoke(self, token_id: str, expires_at: datetime) -> None:
        """Deny `token_id` until `expires_at`."""
        if not token_id:
            return
        remaining = math.ceil((expires_at - self._clock()).total_seconds())
        if remaining <= 0:
            # Already dead on its own
            return
        await self.cache.set(f"{KEY_PREFIX}{token_id}", True, ttl=remaining)
        logger.info(f"Token revoked: {token_id} ({remaining}s remaining)")
    
    async def is_revoked(self, token_id: str) -> bool:
        if not token_id:
            return False
        return await self.cache.exists(f"{KEY_PREFIX}{token_id}")
