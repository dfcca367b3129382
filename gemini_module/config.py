"""Gemini API configuration"""

from __future__ import annotations

from typing import Any

from google.genai import types
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GeminiConfig(BaseSettings):
    """Gemini generation settings. Docs: https://ai.google.dev/gemini-api/docs"""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        env_file=None,
        extra="ignore",
        case_sensitive=False,
    )

    api_key: str = Field(default="", description="Gemini API key (GEMINI_API_KEY)")
    max_output_tokens: int = Field(default=8192, ge=1, description="Max output tokens per call")
    temperature: float = Field(default=0.0, ge=0.0, le=2.0, description="Default sampling temperature")
    retry_attempts: int = Field(default=1, ge=1, description="Default attempts per call")
    retry_delay: float = Field(default=2.0, ge=0.0, description="Fixed delay between attempts (seconds)")
    file_poll_interval: float = Field(default=2.0, gt=0.0, description="Polling interval for uploaded files")
    file_processing_timeout: float = Field(
        default=600.0,
        gt=0.0,
        description="Max time to wait for an uploaded file to become ACTIVE",
    )

    @field_validator("api_key")
    @classmethod
    def strip_api_key(cls, v: str) -> str:
        return v.strip()

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key)

    def with_api_key(self, api_key: str | None) -> GeminiConfig:
        """Copy of this config using ``api_key`` when given, else the configured one."""
        if not api_key:
            return self
        return self.model_copy(update={"api_key": api_key.strip()})

    def to_generation_config(
        self,
        temperature: float | None = None,
        response_schema: Any = None,
    ) -> types.GenerateContentConfig:
        """Build request config; a response schema switches the call to JSON output."""
        params: dict[str, Any] = {
            "max_output_tokens": self.max_output_tokens,
            "temperature": self.temperature if temperature is None else temperature,
        }
        if response_schema is not None:
            params["response_schema"] = response_schema
            params["response_mime_type"] = "application/json"
        return types.GenerateContentConfig(**params)
