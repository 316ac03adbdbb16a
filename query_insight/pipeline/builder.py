"""Build the chat-completion request body from a data document and a question."""
from __future__ import annotations

from query_insight.core.config.models import DEFAULT_MODEL, DEFAULT_QUESTION, DEFAULT_SYSTEM_PREFIX
from query_insight.core.contracts.payload import ChatMessage, RequestPayload
from query_insight.data_access.serializer import EMPTY_DOCUMENT


def build_payload(
    document: str | None,
    question: str | None = None,
    model: str = DEFAULT_MODEL,
    system_prefix: str = DEFAULT_SYSTEM_PREFIX,
    default_question: str = DEFAULT_QUESTION,
) -> RequestPayload:
    if document is None:
        document = EMPTY_DOCUMENT
    user_message = question if question and question.strip() else default_question
    return RequestPayload(
        model=model,
        messages=[
            ChatMessage(role="system", content=system_prefix + document),
            ChatMessage(role="user", content=user_message),
        ],
    )


def serialize_payload(payload: RequestPayload) -> str:
    # JSON string escaping covers quotes, backslashes and control characters
    return payload.model_dump_json()
