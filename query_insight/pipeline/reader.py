"""POST the request body and read the response through an ordered fallback chain.

Reading large or chunked bodies can fail part way, so the body is read by a list of
strategies tried in order until one yields text:

    stream -> header probe -> truncated text -> synthesized error body

A failure to obtain a response (connect, send) or any timeout, including one
while the body is streaming, is treated as a failed call. Every later problem
degrades to a body that is still well-formed JSON, with the status code kept.
"""
from __future__ import annotations

import io
import json
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable

import httpx

from query_insight.core.config.models import TimeoutConfig
from query_insight.core.contracts.outcome import STATUS_UNREADABLE, HttpOutcome, ReadMethod

log = logging.getLogger("reader")

JSON_CONTENT_TYPE = "application/json; charset=utf-8"
DEFAULT_TRUNCATED_READ_LIMIT = 8000


def build_headers(token: str) -> dict[str, str]:
    return {
        "Content-Type": JSON_CONTENT_TYPE,
        "Authorization": f"Bearer {token}",
    }


def build_timeout(timeouts: TimeoutConfig) -> httpx.Timeout:
    return httpx.Timeout(
        connect=timeouts.connect,
        write=timeouts.send,
        read=timeouts.receive,
        pool=timeouts.connect,
    )


def error_body(message: str) -> str:
    return json.dumps({"error": message})


@dataclass
class BodyReadState:
    """Per-response scratch space shared by the read strategies."""

    response: httpx.Response
    limit: int = DEFAULT_TRUNCATED_READ_LIMIT
    staging: io.BytesIO = field(default_factory=io.BytesIO)
    stream_complete: bool = False
    headers: dict[str, str] = field(default_factory=dict)
    possibly_truncated: bool = False
    errors: list[str] = field(default_factory=list)


ReadResult = tuple[str, ReadMethod] | None
ReadStrategy = Callable[[BodyReadState], Awaitable[ReadResult]]


async def read_stream(state: BodyReadState) -> ReadResult:
    """Copy the byte stream into the staging buffer, rewind, read it back as UTF-8 text."""
    try:
        async for chunk in state.response.aiter_bytes():
            state.staging.write(chunk)
    except httpx.TimeoutException:
        # receive timeout: the call failed, not a degraded body
        raise
    except (httpx.HTTPError, httpx.StreamError) as e:
        state.errors.append(f"stream read failed: {type(e).__name__}: {e}")
        log.warning("Could not read response stream (%s bytes received): %s", state.staging.tell(), e)
        return None
    state.stream_complete = True
    state.staging.seek(0)
    text_view = io.TextIOWrapper(state.staging, encoding="utf-8")
    try:
        text = text_view.read()
    except UnicodeDecodeError as e:
        state.errors.append(f"stream decode failed: {e}")
        log.warning("Response stream is not valid UTF-8: %s", e)
        return None
    finally:
        # keep the staging buffer open for the next strategies
        text_view.detach()
    log.info("Response text read from stream. Length: %s characters", len(text))
    return text, ReadMethod.STREAM


async def probe_headers(state: BodyReadState) -> ReadResult:
    """Diagnostic only: confirms the server answered. Yields a body only for a declared empty one."""
    state.headers = dict(state.response.headers)
    preview = "; ".join(f"{k}: {v}" for k, v in state.headers.items())
    log.info("Response headers retrieved, API responded. Headers preview: %s", preview[:200])
    if state.headers.get("content-length") == "0" and not state.staging.getvalue():
        return "", ReadMethod.HEADER_ONLY
    return None


async def read_truncated_text(state: BodyReadState) -> ReadResult:
    """Decode whatever arrived into a bounded buffer. The result may be incomplete."""
    data = state.staging.getvalue()
    if not data:
        return None
    text = data.decode("utf-8", errors="replace")
    truncated = not state.stream_complete
    if len(text) > state.limit:
        text = text[: state.limit]
        truncated = True
    state.possibly_truncated = truncated
    log.warning("Got response (may be truncated): %s characters", len(text))
    return text, ReadMethod.TRUNCATED_TEXT


async def synthesize_error(state: BodyReadState) -> ReadResult:
    detail = "; ".join(state.errors) or "empty response stream"
    log.warning("Failed to read response text, using synthesized error body")
    return error_body(f"Could not read response text from API: {detail}"), ReadMethod.FAILED


BODY_READ_STRATEGIES: tuple[ReadStrategy, ...] = (
    read_stream,
    probe_headers,
    read_truncated_text,
    synthesize_error,
)


async def read_body(
    state: BodyReadState,
    strategies: tuple[ReadStrategy, ...] = BODY_READ_STRATEGIES,
) -> tuple[str, ReadMethod]:
    for strategy in strategies:
        result = await strategy(state)
        if result is not None:
            return result
    return await synthesize_error(state)


def read_status(response: httpx.Response) -> tuple[int, str | None]:
    try:
        status_code = int(response.status_code)
    except (AttributeError, TypeError, ValueError) as e:
        log.warning("Failed to get status code: %s", e)
        status_code = STATUS_UNREADABLE
    try:
        status_text = response.reason_phrase or None
    except (AttributeError, TypeError, ValueError) as e:
        log.warning("Failed to get status text: %s", e)
        status_text = None
    return status_code, status_text


def failed_outcome(message: str, content_size: int, timeouts: TimeoutConfig) -> HttpOutcome:
    log.error(
        "%s (request %s KB, timeouts connect=%ss send=%ss receive=%ss)",
        message,
        content_size // 1024,
        timeouts.connect,
        timeouts.send,
        timeouts.receive,
    )
    return HttpOutcome(
        status_code=None,
        raw_body=error_body(message),
        read_method=ReadMethod.FAILED,
        error=message,
    )


async def send(
    url: str,
    headers: dict[str, str],
    body: str,
    timeouts: TimeoutConfig | None = None,
    *,
    verify: bool = True,
    transport: httpx.AsyncBaseTransport | None = None,
    truncated_read_limit: int = DEFAULT_TRUNCATED_READ_LIMIT,
    strategies: tuple[ReadStrategy, ...] = BODY_READ_STRATEGIES,
) -> HttpOutcome:
    timeouts = timeouts or TimeoutConfig()
    if not verify:
        log.warning("TLS certificate validation is DISABLED for %s", url)
    content = body.encode("utf-8")
    log.info("POST %s (%s bytes)", url, len(content))

    async with httpx.AsyncClient(timeout=build_timeout(timeouts), verify=verify, transport=transport) as client:
        try:
            request = client.build_request("POST", url, headers=headers, content=content)
            response = await client.send(request, stream=True)
        except (httpx.TransportError, httpx.InvalidURL) as e:
            return failed_outcome(f"Failed to send HTTP request: {type(e).__name__}: {e}", len(content), timeouts)

        try:
            status_code, status_text = read_status(response)
            log.info("HTTP %s %s", status_code, status_text or "")
            state = BodyReadState(response=response, limit=truncated_read_limit)
            raw_body, method = await read_body(state, strategies)
        except httpx.TimeoutException as e:
            return failed_outcome(f"Timed out reading HTTP response: {type(e).__name__}: {e}", len(content), timeouts)
        finally:
            await response.aclose()

    log.info("Response read via %s. Preview: %s", method.value, raw_body[:500])
    return HttpOutcome(
        status_code=status_code,
        status_text=status_text,
        raw_body=raw_body,
        read_method=method,
        possibly_truncated=state.possibly_truncated,
        headers=state.headers or dict(response.headers),
        error="; ".join(state.errors) or None,
    )
