"""Turn an HttpOutcome into an AnswerResult, pulling the answer from known response shapes."""
from __future__ import annotations

import json
import logging
from typing import Any

from query_insight.core.contracts.outcome import STATUS_UNREADABLE, AnswerResult, HttpOutcome, ReadMethod, Status

log = logging.getLogger("extractor")

# Tried in order; first scalar hit wins.
ANSWER_PATHS: tuple[tuple[str | int, ...], ...] = (
    ("choices", 0, "message", "content"),  # OpenAI-compatible
    ("message",),
    ("response",),
)


def lookup_path(document: Any, path: tuple[str | int, ...]) -> Any:
    node = document
    for key in path:
        if isinstance(key, int):
            if not isinstance(node, list) or not -len(node) <= key < len(node):
                return None
            node = node[key]
        else:
            if not isinstance(node, dict) or key not in node:
                return None
            node = node[key]
    return node


def _scalar_text(value: Any) -> str | None:
    # Objects, arrays, null and booleans are not answers
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def find_answer(raw_body: str | None, paths: tuple[tuple[str | int, ...], ...] = ANSWER_PATHS) -> str | None:
    if not raw_body:
        return None
    try:
        document = json.loads(raw_body)
    except ValueError:
        return None
    for path in paths:
        text = _scalar_text(lookup_path(document, path))
        if text is not None:
            return text
    return None


def _error_kind(outcome: HttpOutcome) -> str | None:
    if outcome.status_code is None:
        return "connection_failure"
    if outcome.status_code == STATUS_UNREADABLE:
        return "status_unreadable"
    if outcome.status_code != 200:
        return "http_error"
    if outcome.read_method is ReadMethod.FAILED:
        return "body_unreadable"
    return None


def extract_answer(
    outcome: HttpOutcome,
    *,
    request_size_bytes: int = 0,
    query_data_sent: str | None = None,
) -> AnswerResult:
    common = dict(
        status_code=outcome.status_code,
        status_text=outcome.status_text,
        raw_body=outcome.raw_body,
        request_size_bytes=request_size_bytes,
        query_data_sent=query_data_sent,
        read_method=outcome.read_method,
        possibly_truncated=outcome.possibly_truncated,
    )
    kind = _error_kind(outcome)
    if kind is not None:
        log.warning("No usable response (%s): status=%s %s", kind, outcome.status_code, outcome.status_text or "")
        return AnswerResult(status=Status.ERROR, error_kind=kind, error_message=outcome.error, **common)

    answer = find_answer(outcome.raw_body)
    log.info("AI message extracted: %s", "YES" if answer is not None else "NO (check raw body)")
    return AnswerResult(status=Status.SUCCESS, answer_text=answer, **common)
