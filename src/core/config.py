"""Application settings and CORS configuration."""

import json
import os
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=(".env"), env_file_encoding="utf-8")

    # App
    APP_NAME: str = "ReportPilot"
    ENVIRONMENT: str = "development"  # development | production | test

    # CORS
    # Accept list or CSV/JSON string from env; normalized to list[str] by validators
    CORS_ORIGINS: list[str] | str = [
        "http://localhost:8000",
        "http://127.0.0.1:8000",
    ]
    ALLOW_CREDENTIALS: bool = True

    # AI / LLM provider configuration
    # GEMINI_API_KEY is optional at startup; sessions fail without it
    LLM_PROVIDER: Literal["gemini", "azure_openai"] = "gemini"
    GEMINI_API_KEY: str | None = None
    AZURE_OPENAI_ENDPOINT: str | None = None
    AZURE_OPENAI_API_KEY: str | None = None
    AZURE_OPENAI_API_VERSION: str | None = None

    # Report drafting model
    REPORT_MODEL: str = "gemini-3-flash-preview"
    REPORT_TEMPERATURE: float = Field(default=0.5, ge=0.0, le=2.0)

    # Form defaults
    DEFAULT_UNIVERSITY: str = "Université Mohammed Premier"
    DEFAULT_SCHOOL: str = "Ecole Nationale des Sciences Appliquées Oujda"
    # None means "current academic year"
    DEFAULT_ACADEMIC_YEAR: str | None = None

    # Presentation
    COPY_FEEDBACK_SECONDS: float = Field(default=2.0, gt=0)

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: object) -> list[str]:
        """Allow list, CSV string, or JSON array string for CORS origins."""
        if isinstance(v, list):
            return [str(i).strip() for i in v]
        if isinstance(v, str):
            s = v.strip()
            if not s:
                return []
            if s.startswith("["):
                try:
                    parsed = json.loads(s)
                except json.JSONDecodeError as e:
                    raise ValueError(
                        "CORS_ORIGINS must be a CSV list or JSON array string"
                    ) from e
                if not isinstance(parsed, list):
                    raise ValueError("CORS_ORIGINS JSON must be a list")
                return [str(i).strip() for i in parsed]
            # CSV fallback
            return [i.strip() for i in s.split(",") if i.strip()]
        raise ValueError("Invalid CORS_ORIGINS type; expected str or list[str]")

    @model_validator(mode="after")
    def _validate_cors_credentials(self) -> "Settings":
        """Ensure wildcard origins are not used when credentials are allowed."""
        if isinstance(self.CORS_ORIGINS, str):
            self.CORS_ORIGINS = self.assemble_cors_origins(self.CORS_ORIGINS)
        if self.ALLOW_CREDENTIALS and any(
            o.strip() == "*" for o in (self.CORS_ORIGINS or [])
        ):
            raise ValueError(
                "CORS configuration error: ALLOW_CREDENTIALS=True but "
                "CORS_ORIGINS contains '*'. Use explicit origins when credentials "
                "are allowed."
            )
        return self


@lru_cache
def get_settings() -> Settings:
    env = os.getenv("ENVIRONMENT", "development").lower()
    if env not in {"development", "production", "test"}:
        raise ValueError("ENVIRONMENT must be 'development', 'production', or 'test'")

    if env == "production":
        env_file = ".env.prod"
    elif env == "development":
        env_file = ".env.dev"
    else:
        # test environment - no env file needed, use defaults
        env_file = ""

    # In production the drafting model cannot work without a provider key.
    if env == "production" and not (
        os.getenv("GEMINI_API_KEY") or os.getenv("AZURE_OPENAI_API_KEY")
    ):
        raise RuntimeError(
            "GEMINI_API_KEY or AZURE_OPENAI_API_KEY must be set in production"
        )

    # pydantic-settings accepts the runtime-only `_env_file` kwarg; mypy's stub
    # doesn't, hence the scoped ignore.
    return Settings(_env_file=env_file or None)  # type: ignore[call-arg]
