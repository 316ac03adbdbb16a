from typing import Any

from pydantic import BaseModel, Field


class AskRequest(BaseModel):
    query: str
    question: str | None = None
    model: str | None = None
    api_url: str | None = None
    api_token: str | None = None


class AskResponse(BaseModel):
    status: str  # "Success" | "Error" | "Exception"
    status_code: int | None = None
    status_text: str | None = None
    answer: str | None = None
    raw_response: str | None = None
    query_data_sent: str | None = None
    read_method: str | None = None
    possibly_truncated: bool = False
    request_size_bytes: int = 0
    error_kind: str | None = None
    error: str | None = None
    error_step: str | None = None
    record: dict[str, Any] = Field(default_factory=dict)
