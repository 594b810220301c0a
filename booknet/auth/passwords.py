"""
Password hashing.

PBKDF2-SHA256 with a per-password random salt, stored as "salt:hash".
"""

from __future__ import annotations

import hashlib
import secrets


class PasswordHasher:
    """One-way hash and verify of credentials."""
    
    def __init__(self, iterations: int = 100_000):
        self.iterations = iterations
    
    def _derive(self, password: str, salt: str) -> str:
        return hashlib.pbkdf2_hmac(
            'sha256',
            password.encode('utf-8'),
            salt.encode('utf-8'),
            iterations=self.iterations,
        ).hex()
    
    def hash(self, password: str) -> str:
        """
        Hash a password.
        
        Returns: salt:hash format string
        """
        if not password:
            raise ValueError("Password cannot be empty")
        salt = secrets.token_hex(32)
        return f"{salt}:{self._derive(password, salt)}"
    
    def verify(self, password: str, password_hash: str) -> bool:
        """Verify a password against its hash."""
        try:
            salt, stored_hash = password_hash.split(':')
        except (ValueError, AttributeError):
            return False
        if not password:
            return False
        return secrets.compare_digest(self._derive(password, salt), stored_hash)
