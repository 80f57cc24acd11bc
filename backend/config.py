"""
Configuration management for the Soulbound Token Registry.

Loads settings from .env via pydantic-settings.

Notes:
    - registry_admin_wallet: when set, the registry row is created on startup
      and the wallet gets the "admin" role at login
    - validate_production_settings() enforces strict CORS and auth in production
"""
import logging

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ── Database ────────────────────────────────────────────────────
    database_url: str = "sqlite:///./data/soulbound_registry.db"
    database_echo: bool = False

    # ── Registry ────────────────────────────────────────────────────
    registry_name: str = "Soulbound Registry"
    registry_symbol: str = "SOUL"
    registry_base_uri: str = ""
    registry_admin_wallet: str = ""

    # ── Application ─────────────────────────────────────────────────
    environment: str = "development"
    log_level: str = "INFO"

    # ── Auth (JWT) ──────────────────────────────────────────────────
    jwt_secret: str = ""
    jwt_issuer: str = "soulbound-registry"
    jwt_access_ttl_minutes: int = 15
    auth_challenge_ttl_minutes: int = 5

    # ── Rate limits (per client IP, per window) ─────────────────────
    rate_limit_window_seconds: int = 60
    auth_challenge_rate_limit: int = 20
    auth_verify_rate_limit: int = 30

    # ── CORS ────────────────────────────────────────────────────────
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173,http://127.0.0.1:5173"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def async_database_url(self) -> str:
        """sqlite:///x.db -> sqlite+aiosqlite:///x.db; other URLs pass through."""
        if self.database_url.startswith("sqlite:///"):
            return self.database_url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
        return self.database_url

    def validate_production_settings(self):
        """
        Validate settings for production safety.

        Called during app startup. Raises ValueError in production when a
        setting is unsafe; only logs warnings elsewhere.
        """
        problems = []
        if "*" in self.cors_origins:
            problems.append("CORS_ORIGINS must not contain '*'")
        if not self.jwt_secret:
            problems.append("JWT_SECRET must be set (wallet login signs access tokens with it)")
        if not self.registry_admin_wallet:
            problems.append("REGISTRY_ADMIN_WALLET must be set (nobody can mint or unbind otherwise)")

        if self.environment == "production":
            if problems:
                raise ValueError("Unsafe production settings: " + "; ".join(problems))
            logger.info("✅ Production settings validated")
            return

        for problem in problems:
            logger.warning(f"⚠️  {problem}")


# Global settings instance
settings = Settings()
