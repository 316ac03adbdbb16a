"""Gateway FastAPI app: POST /ask -> query, build, send, extract."""
from __future__ import annotations

import logging
import os

import httpx
from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(name)s] %(message)s", datefmt="%H:%M:%S")
log = logging.getLogger("gateway")

from query_insight.core.config.models import AppConfig
from query_insight.core.contracts.gateway import AskRequest, AskResponse
from query_insight.core.contracts.outcome import AnswerResult
from query_insight.core.exceptions import ConfigError
from query_insight.data_access.relational.source import QuerySource
from query_insight.gateway.deps import get_config
from query_insight.pipeline.controller import ask

app = FastAPI(title="Query Insight: Gateway")
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])


def config_dependency() -> AppConfig:
    try:
        return get_config()
    except ConfigError as e:
        log.error("Config load failed: %s", e)
        raise HTTPException(status_code=500, detail=str(e))


def source_dependency() -> QuerySource | None:
    # None lets the pipeline build a SqlQuerySource from config.database_url
    return None


def transport_dependency() -> httpx.AsyncBaseTransport | None:
    return None


def resolve_target(req: AskRequest, config: AppConfig) -> tuple[str | None, str | None]:
    """The configured token is only ever sent to the configured endpoint."""
    if req.api_url and req.api_url != config.api_url:
        return req.api_url, req.api_token
    return config.api_url, req.api_token or config.api_token


def to_response(result: AnswerResult) -> AskResponse:
    return AskResponse(
        status=result.status.value,
        status_code=result.status_code,
        status_text=result.status_text,
        answer=result.answer_text,
        raw_response=result.raw_body,
        query_data_sent=result.query_data_sent,
        read_method=result.read_method.value if result.read_method else None,
        possibly_truncated=result.possibly_truncated,
        request_size_bytes=result.request_size_bytes,
        error_kind=result.error_kind,
        error=result.error_message,
        error_step=result.error_step,
        record=result.to_record(),
    )


@app.get("/health")
def health():
    return {"status": "ok"}


@app.post("/ask", response_model=AskResponse)
async def ask_endpoint(
    req: AskRequest,
    config: AppConfig = Depends(config_dependency),
    source: QuerySource | None = Depends(source_dependency),
    transport: httpx.AsyncBaseTransport | None = Depends(transport_dependency),
):
    log.info("QUERY: %s", (req.query[:200] + "…") if len(req.query) > 200 else req.query)
    url, token = resolve_target(req, config)
    result = await ask(
        req.query,
        req.question,
        url=url,
        token=token,
        model=req.model or config.model,
        config=config,
        source=source,
        transport=transport,
    )
    log.info("RESULT: %s (%s)", result.status.value, result.status_code)
    return to_response(result)


if __name__ == "__main__":
    import uvicorn
    port = int(os.environ.get("PORT", "8000"))
    uvicorn.run(app, host="0.0.0.0", port=port)
