from typing import Literal

from pydantic import BaseModel, Field


class ChatMessage(BaseModel):
    role: Literal["system", "user"]
    content: str


class RequestPayload(BaseModel):
    """Chat-completion request body: system message with the data, user message with the question."""

    model: str
    messages: list[ChatMessage] = Field(min_length=2, max_length=2)
