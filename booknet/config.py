"""
Application configuration.

Loads settings from environment variables with sensible defaults.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""
    
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")
    
    # ==========================================================================
    # Environment
    # ==========================================================================
    
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"
    
    # ==========================================================================
    # API Server
    # ==========================================================================
    
    api_host: str = "0.0.0.0"
    api_port: int = 8088
    cors_origins: str = "http://localhost:4200"
    
    # Paths that skip token resolution entirely (fnmatch patterns)
    auth_exempt_paths: list[str] = [
        "/auth/register",
        "/auth/authenticate",
        "/auth/activate-account",
        "/health",
        "/docs",
        "/docs/*",
        "/redoc",
        "/openapi.json",
    ]
    
    # ==========================================================================
    # Authentication
    # ==========================================================================
    
    jwt_secret_key: str = "dev-jwt-secret-change-in-production-0123456789"
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 24 * 60
    
    # Key ring for rotation: {"kid": "secret"}. When empty, jwt_secret_key
    # is used under jwt_active_key_id.
    jwt_signing_keys: dict[str, str] = {}
    jwt_active_key_id: str = "default"
    
    password_hash_iterations: int = 100_000
    
    # ==========================================================================
    # Account activation
    # ==========================================================================
    
    activation_token_expire_minutes: int = 15
    activation_code_length: int = 6
    activation_url: str = "http://localhost:4200/activate-account"
    
    # ==========================================================================
    # Email (AWS SES)
    # ==========================================================================
    
    aws_region: str = "us-east-1"
    aws_access_key_id: str = ""
    aws_secret_access_key: str = ""
    aws_ses_from_email: str = ""
    
    # ==========================================================================
    # Seed data
    # ==========================================================================
    
    seed_file: str = "config/seed.yaml"
    
    # ==========================================================================
    # Helpers
    # ==========================================================================
    
    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]
    
    @property
    def is_production(self) -> bool:
        return self.environment == "production"
    
    @property
    def use_aws(self) -> bool:
        """Whether AWS services should be used."""
        return bool(self.aws_access_key_id and self.aws_secret_access_key)
    
    @property
    def signing_keys(self) -> dict[str, str]:
        """The effective key ring, falling back to the single secret."""
        if self.jwt_signing_keys:
            return dict(self.jwt_signing_keys)
        return {self.jwt_active_key_id: self.jwt_secret_key}


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
