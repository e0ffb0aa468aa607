"""
Configuration
=============

Explicit settings object built once at startup and handed to providers and
the API. This is the only module that reads the process environment.

Recognized variables (a .env file is loaded first when present):

    BEARER_KEY            token required on /api/* routes
    OPENROUTER_API_KEY    key for the recommendation agent
    OPENROUTER_MODEL      model id (default: openai/gpt-4o-mini)
    OPENROUTER_BASE_URL   API base URL
    LLM_TEMPERATURE       sampling temperature
    PROVIDER_TIMEOUT      seconds allowed per provider-backed step (0 disables)
    FORECAST_PROVIDER     "mock" or "open-meteo"
    STRICT_GEOCODING      mock provider fails on unknown cities when true
    ACTIVITIES_LANGUAGE   language the recommendations are written in
    CORS_ORIGINS          comma-separated origins (default: *)
    LOG_LEVEL             logging level name
    LOG_FILE              optional log file path
"""

import os
from typing import List, Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field


def _as_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    """Service settings."""

    bearer_key: Optional[str] = Field(default=None, description="Token required on /api/* routes")

    openrouter_api_key: Optional[str] = None
    openrouter_model: str = "openai/gpt-4o-mini"
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    llm_temperature: float = 0.3

    provider_timeout: float = Field(default=30.0, ge=0)
    forecast_provider: Literal["mock", "open-meteo"] = "mock"
    strict_geocoding: bool = False
    activities_language: str = "Japanese"

    cors_origins: List[str] = Field(default_factory=lambda: ["*"])

    log_level: str = "INFO"
    log_file: Optional[str] = None

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "Settings":
        """
        Build settings from the environment.

        Args:
            env_file: Explicit .env path (default: search from the working directory)
        """
        load_dotenv(env_file)
        values = {
            "bearer_key": os.getenv("BEARER_KEY"),
            "openrouter_api_key": os.getenv("OPENROUTER_API_KEY"),
            "openrouter_model": os.getenv("OPENROUTER_MODEL"),
            "openrouter_base_url": os.getenv("OPENROUTER_BASE_URL"),
            "llm_temperature": os.getenv("LLM_TEMPERATURE"),
            "provider_timeout": os.getenv("PROVIDER_TIMEOUT"),
            "forecast_provider": os.getenv("FORECAST_PROVIDER"),
            "activities_language": os.getenv("ACTIVITIES_LANGUAGE"),
            "log_level": os.getenv("LOG_LEVEL"),
            "log_file": os.getenv("LOG_FILE"),
        }
        # Unset variables fall back to the field defaults
        values = {k: v for k, v in values.items() if v is not None}

        values["strict_geocoding"] = _as_bool(os.getenv("STRICT_GEOCODING"))
        origins = os.getenv("CORS_ORIGINS")
        if origins:
            values["cors_origins"] = [o.strip() for o in origins.split(",") if o.strip()]

        return cls(**values)
