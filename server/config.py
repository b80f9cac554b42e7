"""
Runtime configuration for the Repo Health API.

All settings come from environment variables; a .env file next to the
server is loaded first so local development does not need exported vars.
"""

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

from errors import ConfigurationError

ENV_PATH = Path(__file__).resolve().parent / ".env"
load_dotenv(ENV_PATH)

PROVIDER_NAMES = ("gemini", "groq")

DEFAULT_DATABASE_URL = "sqlite:///./database.db"

DEFAULT_ORIGINS = (
    "http://localhost:3000",
    "http://localhost:5173",
    "http://localhost:8000",
    "http://localhost:8080",
)


def parse_origins(raw: str | None) -> tuple[str, ...]:
    if not raw:
        return DEFAULT_ORIGINS
    return tuple(origin.strip() for origin in raw.split(",") if origin.strip())


def load_allowed_origins() -> tuple[str, ...]:
    """
    CORS origins from ALLOWED_ORIGINS (comma-separated).

    Usable without a GITHUB_TOKEN: the CORS middleware is installed when the
    app object is built, before startup loads the full Settings.
    """
    return parse_origins(os.getenv("ALLOWED_ORIGINS"))


@dataclass(frozen=True)
class Settings:
    github_token: str
    github_api_url: str = "https://api.github.com"
    github_timeout: float = 30.0
    gemini_api_key: str | None = None
    gemini_model: str = "gemini-2.0-flash"
    groq_api_key: str | None = None
    groq_model: str = "llama-3.3-70b-versatile"
    provider_override: str | None = None
    environment: str = "development"
    log_level: str = "INFO"
    database_url: str = DEFAULT_DATABASE_URL
    allowed_origins: tuple[str, ...] = DEFAULT_ORIGINS

    @property
    def ai_provider(self) -> str | None:
        """
        Name of the text-generation provider to use, or None.

        An explicit AI_PROVIDER wins; otherwise the first provider with a
        configured key is picked (gemini before groq).
        """
        if self.provider_override:
            choice = self.provider_override.lower()
            if choice == "gemini" and self.gemini_api_key:
                return "gemini"
            if choice == "groq" and self.groq_api_key:
                return "groq"
            return None

        if self.gemini_api_key:
            return "gemini"
        if self.groq_api_key:
            return "groq"
        return None


def load_settings() -> Settings:
    """Build Settings from the environment. Raises ConfigurationError."""
    github_token = os.getenv("GITHUB_TOKEN")
    if not github_token:
        raise ConfigurationError("GITHUB_TOKEN is not set in environment variables")

    override = os.getenv("AI_PROVIDER") or None
    if override and override.lower() not in PROVIDER_NAMES + ("none",):
        raise ConfigurationError(
            f"AI_PROVIDER must be one of {', '.join(PROVIDER_NAMES)} or none, got '{override}'"
        )

    try:
        github_timeout = float(os.getenv("GITHUB_TIMEOUT", "30"))
    except ValueError as e:
        raise ConfigurationError(f"GITHUB_TIMEOUT must be a number: {e}") from e

    return Settings(
        github_token=github_token,
        github_api_url=os.getenv("GITHUB_API_URL", "https://api.github.com").rstrip("/"),
        github_timeout=github_timeout,
        gemini_api_key=os.getenv("GEMINI_API_KEY") or None,
        gemini_model=os.getenv("GEMINI_MODEL", "gemini-2.0-flash"),
        groq_api_key=os.getenv("GROQ_API_KEY") or None,
        groq_model=os.getenv("GROQ_MODEL", "llama-3.3-70b-versatile"),
        provider_override=override,
        environment=os.getenv("ENVIRONMENT", "development").lower(),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        database_url=os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URL,
        allowed_origins=load_allowed_origins(),
    )


@lru_cache
def get_settings() -> Settings:
    return load_settings()
