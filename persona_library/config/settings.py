"""Settings models for the personad daemon and chat clients.

Contract:
- Inputs: Environment variables, YAML files
- Outputs: Validated settings objects
- Side Effects: None (read-only)
"""

from pydantic import AliasChoices
from pydantic import Field
from pydantic import field_validator
from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict


class PersonaSettings(BaseSettings):
    """Configuration for personad.

    Attributes:
        host: Listen address (default: 127.0.0.1)
        port: Listen port (default: 8420)
        log_level: Logging level (default: info)
        workers: Number of workers (default: 1)
        cors_origins: Origins allowed to call the API from a browser
        gemini_api_key: API key for the Gemini provider
        model: Gemini model used for chat completions
        temperature: Sampling temperature for chat completions
        gateway_url: Where HTTP chat clients reach the completion gateway
        summary_length: Characters of the last message kept on a session
        stream_timeout_seconds: Read timeout for HTTP frame sources (None = wait forever)

    Example:
        >>> settings = PersonaSettings()
        >>> assert settings.port == 8420
        >>> assert settings.temperature == 0.7
    """

    model_config = SettingsConfigDict(
        env_prefix="PERSONAD_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    host: str = "127.0.0.1"
    port: int = Field(default=8420, ge=1, le=65535)
    log_level: str = "info"
    workers: int = Field(default=1, ge=1)
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:5173"],
    )

    gemini_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("PERSONAD_GEMINI_API_KEY", "GEMINI_API_KEY"),
    )
    model: str = "gemini-2.5-flash"
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)

    gateway_url: str = "http://127.0.0.1:8420/api/chat"
    summary_length: int = Field(default=100, ge=1)
    stream_timeout_seconds: float | None = Field(default=None, gt=0)

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Accept any casing for the log level."""
        return v.lower()
