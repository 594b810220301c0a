# =============================================================================
# JWT Token Codec
# =============================================================================
#
# Signed, time-bound identity tokens:
#   - Token creation (subject + authorities, signed with the active key)
#   - Token validation (signature via `kid` lookup, expiry via the clock)
#   - Key rotation (any key in the ring verifies, only the active key signs)
#
# =============================================================================

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any
import logging
import secrets

from pydantic import BaseModel, Field
import jwt

from booknet.config import Settings, get_settings
from booknet.core.errors import (
    TokenError,
    TokenExpiredError,
    TokenInvalidError,
    TokenMalformedError,
    TokenSignatureError,
)
from booknet.core.utils import Clock, utc_now

logger = logging.getLogger(__name__)

__all__ = [
    "TokenClaims",
    "TokenCodec",
    "TokenError",
    "TokenExpiredError",
    "TokenInvalidError",
    "TokenMalformedError",
    "TokenSignatureError",
]

# Claims every token must carry
REQUIRED_CLAIMS = ["sub", "iat", "exp"]
RESERVED_CLAIMS = {"sub", "iat", "exp", "jti", "authorities"}


# =============================================================================
# Models
# =============================================================================

class TokenClaims(BaseModel):
    """Decoded, signature-verified token payload."""
    subject: str
    authorities: list[str] = Field(default_factory=list)
    issued_at: datetime
    expires_at: datetime
    token_id: str = ""  # jti, the handle used for revocation
    key_id: str | None = None
    extra: dict[str, Any] = Field(default_factory=dict)
    
    def is_expired(self, now: datetime) -> bool:
        # A token whose expiry equals "now" is already dead
        return self.expires_at <= now


# =============================================================================
# Codec
# =============================================================================

class TokenCodec:
    """
    Encodes and decodes bearer tokens.
    
    The signing key is resolved from the `kid` header on decode, so keys
    can be rotated by adding a new one to the ring and switching
    `active_key_id`; tokens signed by the previous key keep verifying
    until it is removed from the ring.
    """
    
    def __init__(
        self,
        keys: dict[str, str],
        active_key_id: str,
        algorithm: str = "HS256",
        default_ttl: timedelta = timedelta(hours=24),
        clock: Clock = utc_now,
    ):
        if active_key_id not in keys:
            raise ValueError(f"Active key id {active_key_id!r} is not in the key ring")
        self._keys = dict(keys)
        self.active_key_id = active_key_id
        self.algorithm = algorithm
        self.default_ttl = default_ttl
        self._clock = clock
    
    @classmethod
    def from_settings(cls, settings: Settings | None = None, clock: Clock = utc_now) -> TokenCodec:
        settings = settings or get_settings()
        return cls(
            keys=settings.signing_keys,
            active_key_id=settings.jwt_active_key_id,
            algorithm=settings.jwt_algorithm,
            default_ttl=timedelta(minutes=settings.jwt_access_token_expire_minutes),
            clock=clock,
        )
    
    @property
    def key_ids(self) -> list[str]:
        return list(self._keys)
    
    def add_key(self, key_id: str, secret: str, activate: bool = False) -> None:
        """Add a key to the ring, optionally making it the signing key."""
        self._keys[key_id] = secret
        if activate:
            self.active_key_id = key_id
        logger.info(f"Signing key added: {key_id} (active={activate})")
    
    def remove_key(self, key_id: str) -> None:
        """Retire a key; tokens signed with it stop verifying."""
        if key_id == self.active_key_id:
            raise ValueError("Cannot remove the active signing key")
        self._keys.pop(key_id, None)
        logger.info(f"Signing key removed: {key_id}")
    
    # -------------------------------------------------------------------------
    # Encoding
    # -------------------------------------------------------------------------
    
    def encode(
        self,
        subject: str,
        authorities: list[str] | tuple[str, ...] | frozenset[str] = (),
        issued_at: datetime | None = None,
        ttl: timedelta | None = None,
        extra_claims: dict[str, Any] | None = None,
    ) -> str:
        """Create a signed token for `subject`."""
        if not subject:
            raise ValueError("Token subject is required")
        
        issued_at = issued_at or self._clock()
        ttl = ttl if ttl is not None else self.default_ttl
        iat = int(issued_at.timestamp())
        exp = iat + int(ttl.total_seconds())
        
        payload = {
            **{k: v for k, v in (extra_claims or {}).items() if k not in RESERVED_CLAIMS},
            "sub": subject,
            "iat": iat,
            "exp": exp,
            "jti": secrets.token_hex(16),
            "authorities": sorted(authorities),
        }
        
        return jwt.encode(
            payload,
            self._keys[self.active_key_id],
            algorithm=self.algorithm,
            headers={"kid": self.active_key_id},
        )
    
    # -------------------------------------------------------------------------
    # Decoding
    # -------------------------------------------------------------------------
    
    def _resolve_key(self, token: str) -> tuple[str, str]:
        try:
            header = jwt.get_unverified_header(token)
        except jwt.InvalidTokenError as e:
            raise TokenMalformedError(f"Malformed token: {e}")
        
        key_id = header.get("kid") or self.active_key_id
        secret = self._keys.get(key_id)
        if secret is None:
            raise TokenSignatureError(f"Unknown signing key id: {key_id}")
        return key_id, secret
    
    def _verify(self, token: str) -> TokenClaims:
        """Check signature and structure, but not expiry."""
        if not token:
            raise TokenMalformedError("Empty token")
        
        key_id, secret = self._resolve_key(token)
        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[self.algorithm],
                options={
                    "require": REQUIRED_CLAIMS,
                    # Time checks run against our own clock below
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                },
            )
        except jwt.InvalidSignatureError:
            raise TokenSignatureError()
        except jwt.InvalidTokenError as e:
            raise TokenMalformedError(f"Malformed token: {e}")
        
        try:
            return TokenClaims(
                subject=payload["sub"],
                authorities=list(payload.get("authorities") or []),
                issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
                expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
                token_id=payload.get("jti", ""),
                key_id=key_id,
                extra={k: v for k, v in payload.items() if k not in RESERVED_CLAIMS},
            )
        except (TypeError, ValueError) as e:
            raise TokenMalformedError(f"Malformed claims: {e}")
    
    def decode(self, token: str) -> TokenClaims:
        """
        Decode and validate a token.
        
        Raises:
            TokenMalformedError: Not a JWT, or required claims missing
            TokenSignatureError: Signature mismatch or unknown key id
            TokenExpiredError: Token has expired
        """
        claims = self._verify(token)
        if claims.is_expired(self._clock()):
            raise TokenExpiredError()
        return claims
    
    def is_expired(self, token: str) -> bool:
        """Whether a validly signed token is past its expiry."""
        return self._verify(token).is_expired(self._clock())
