from __future__ import annotations

from pydantic import BaseModel, Field

DEFAULT_MODEL = "gpt-3.5-turbo"
DEFAULT_QUESTION = "Please analyze this data and provide insights."
DEFAULT_SYSTEM_PREFIX = "You are analyzing relational data. Here is the data from the query: "


class TimeoutConfig(BaseModel):
    """Per-phase HTTP timeouts in seconds. Receive is generous: documents can be large."""

    connect: float = 60.0
    send: float = 30.0
    receive: float = 120.0


class AppConfig(BaseModel):
    api_url: str | None = None
    api_token: str | None = None
    model: str = DEFAULT_MODEL
    timeouts: TimeoutConfig = Field(default_factory=TimeoutConfig)
    verify_tls: bool = True  # False only for internal/self-signed endpoints
    default_question: str = DEFAULT_QUESTION
    system_prefix: str = DEFAULT_SYSTEM_PREFIX
    truncated_read_limit: int = Field(default=8000, gt=0)
    large_document_warning_chars: int = Field(default=500_000, gt=0)
    database_url: str | None = None
    env_file_path: str | None = ".env"

    def with_overrides(self, **values) -> AppConfig:
        """Copy with the given fields replaced; None values are ignored."""
        update = {k: v for k, v in values.items() if v is not None}
        return self.model_copy(update=update)
