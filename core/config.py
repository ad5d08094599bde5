"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for MealPlanner happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. This is
      the official FastAPI dependency injection pattern for config.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. jwt_secret -> JWT_SECRET). Type coercion and validation are built in.

Security notes:
  JWT_SECRET falls back to a fixed development value when unset. That value
  is public (it lives in this file), so any deployment reachable by real users
  MUST set JWT_SECRET. The fallback is logged loudly but not refused -- the
  check is an operational rule, not a code-enforced one.

  The secret is read once at startup by api/main.py and handed to the
  TokenCodec instance. Nothing else reads settings.jwt_secret.

Layer rule: core/ is the kernel. This module may not import from api/, auth/,
usage/, or preferences/.
"""

import logging
from functools import lru_cache

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("mealplanner.config")

DEV_JWT_SECRET = "dev-secret-change-in-production"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    # Empty string is the sentinel for "not configured"; the validator below
    # swaps in DEV_JWT_SECRET so callers never see "".
    jwt_secret: str = ""
    token_expire_seconds: int = 24 * 60 * 60
    token_issuer: str = "mealplanner-backend"
    bcrypt_rounds: int = 12

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    database_url: str = "sqlite:///mealplanner.db"
    store_timeout_seconds: float = 5.0

    # ------------------------------------------------------------------
    # Usage quota
    # ------------------------------------------------------------------

    default_max_meals: int = 20

    # ------------------------------------------------------------------
    # Meal assistant (Anthropic Messages API)
    # ------------------------------------------------------------------

    anthropic_api_key: str = ""
    llm_model: str = "claude-sonnet-4-5-20250929"
    llm_system_prompt: str = "You are a helpful meal planning assistant."
    llm_max_tokens: int = 1024
    llm_timeout_seconds: float = 30.0

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    # Comma-separated list, e.g. "https://app.example.com,http://localhost:3000"
    allowed_origins: str = "http://localhost:3000"
    rate_limit_enabled: bool = True
    auth_rate_limit: str = "10/minute"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @field_validator("bcrypt_rounds")
    @classmethod
    def validate_bcrypt_rounds(cls, value: int) -> int:
        """bcrypt only accepts cost factors 4..31."""
        if not 4 <= value <= 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31.")
        return value

    @field_validator("token_expire_seconds", "default_max_meals", "llm_max_tokens")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be a positive integer")
        return value

    @model_validator(mode="after")
    def apply_dev_secret(self) -> "Settings":
        """Fall back to the development signing secret when JWT_SECRET is unset.

        Tokens signed with the fallback are forgeable by anyone who has read
        this source file. Production deployments must set JWT_SECRET.
        """
        if not self.jwt_secret:
            self.jwt_secret = DEV_JWT_SECRET
            logger.warning(
                "WARNING: JWT_SECRET is not set; using the development fallback secret. "
                "Never run a production deployment like this."
            )
        return self

    @property
    def origins(self) -> list[str]:
        """allowed_origins split into a clean list for CORSMiddleware."""
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
