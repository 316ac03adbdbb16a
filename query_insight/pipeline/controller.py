"""Sequence build -> send -> extract and turn every failure into one AnswerResult."""
from __future__ import annotations

import logging

import httpx

from query_insight.core.config.models import AppConfig
from query_insight.core.contracts.outcome import AnswerResult, Status
from query_insight.core.exceptions import QueryExecutionError, ValidationError
from query_insight.data_access.relational.source import QuerySource, SqlQuerySource
from query_insight.data_access.serializer import EMPTY_DOCUMENT, RowSerializer
from query_insight.pipeline.builder import build_payload, serialize_payload
from query_insight.pipeline.extractor import extract_answer
from query_insight.pipeline.reader import build_headers, send

log = logging.getLogger("pipeline")


def _is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


def validate_target(url: str | None, token: str | None) -> None:
    missing = [name for name, value in (("api_url", url), ("api_token", token)) if _is_blank(value)]
    if missing:
        raise ValidationError(
            f"{' and '.join(missing)} required. Provide the API endpoint and authentication token."
        )


def warn_if_large(document: str, config: AppConfig) -> None:
    log.info("Data length: %s characters", len(document))
    if len(document) > config.large_document_warning_chars:
        log.warning(
            "Data is very large (%s KB). Consider using LIMIT or WHERE to limit results.",
            len(document) // 1024,
        )


def _exception_result(
    kind: str,
    error: Exception,
    step: str,
    document: str | None = None,
    request_size: int = 0,
) -> AnswerResult:
    return AnswerResult(
        status=Status.EXCEPTION,
        error_kind=kind,
        error_message=str(error) or type(error).__name__,
        error_step=step,
        query_data_sent=document,
        request_size_bytes=request_size,
    )


async def run(
    document: str | None,
    question: str | None = None,
    url: str | None = None,
    token: str | None = None,
    model: str | None = None,
    config: AppConfig | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AnswerResult:
    """Ask `question` about `document`. Never raises: failures come back as Error/Exception results."""
    config = config or AppConfig()
    step = "validate"
    request_size = 0
    try:
        validate_target(url, token)

        step = "build"
        if document is None:
            document = EMPTY_DOCUMENT
        warn_if_large(document, config)
        payload = build_payload(
            document,
            question,
            model=model or config.model,
            system_prefix=config.system_prefix,
            default_question=config.default_question,
        )
        body = serialize_payload(payload)
        request_size = len(body.encode("utf-8"))
        log.info("Model: %s, request body: %s bytes", payload.model, request_size)

        step = "send"
        outcome = await send(
            url,
            build_headers(token),
            body,
            config.timeouts,
            verify=config.verify_tls,
            transport=transport,
            truncated_read_limit=config.truncated_read_limit,
        )

        step = "extract"
        return extract_answer(outcome, request_size_bytes=request_size, query_data_sent=document)
    except ValidationError as e:
        log.error("Validation failed: %s", e)
        return _exception_result("validation", e, step, document)
    except Exception as e:
        log.exception("Pipeline failed at step %s", step)
        return _exception_result("unexpected", e, step, document, request_size)


async def ask(
    query: str,
    question: str | None = None,
    url: str | None = None,
    token: str | None = None,
    model: str | None = None,
    config: AppConfig | None = None,
    *,
    source: QuerySource | None = None,
    serializer: RowSerializer | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AnswerResult:
    """Execute `query`, serialize the rows and run the pipeline on them."""
    config = config or AppConfig()
    step = "validate"
    try:
        validate_target(url, token)

        step = "query"
        if source is None:
            if _is_blank(config.database_url):
                raise ValidationError("database_url required to execute the query.")
            source = SqlQuerySource(config.database_url)
        rows = await source.execute(query)

        step = "serialize"
        document = (serializer or RowSerializer()).to_document(rows)
    except ValidationError as e:
        log.error("Validation failed: %s", e)
        return _exception_result("validation", e, step)
    except QueryExecutionError as e:
        log.error("Query execution failed: %s", e)
        return _exception_result("query_execution", e, step)
    except Exception as e:
        log.exception("Pipeline failed at step %s", step)
        return _exception_result("unexpected", e, step)

    return await run(document, question, url, token, model, config, transport=transport)
