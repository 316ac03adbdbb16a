import json
import logging

import httpx
import pytest

from conftest import API_URL, TOKEN, BrokenStream, json_reply
from query_insight.core.config.models import DEFAULT_SYSTEM_PREFIX, AppConfig
from query_insight.core.contracts.outcome import ReadMethod, Status
from query_insight.core.exceptions import QueryExecutionError
from query_insight.data_access.serializer import RowSerializer
from query_insight.pipeline import controller
from query_insight.pipeline.controller import ask, run

OPENAI_REPLY = {"choices": [{"message": {"role": "assistant", "content": "North has the highest sales."}}]}


class FakeSource:
    def __init__(self, rows=None, error: Exception | None = None):
        self.rows = rows or []
        self.error = error
        self.queries: list[str] = []

    async def execute(self, query):
        self.queries.append(query)
        if self.error:
            raise self.error
        return self.rows


@pytest.mark.asyncio
async def test_run_success(make_transport, config):
    handler, transport = make_transport(json_reply(OPENAI_REPLY))
    document = '[{"Region":"North","Sales":15000}]'
    result = await run(document, "Which region sells most?", API_URL, TOKEN, "gpt-4", config, transport=transport)

    assert result.status is Status.SUCCESS
    assert result.status_code == 200
    assert result.answer_text == "North has the highest sales."
    assert result.query_data_sent == document
    assert result.read_method is ReadMethod.STREAM
    assert result.request_size_bytes == len(handler.requests[0].content)

    sent = handler.last_json()
    assert sent["model"] == "gpt-4"
    assert sent["messages"][0] == {"role": "system", "content": DEFAULT_SYSTEM_PREFIX + document}
    assert sent["messages"][1] == {"role": "user", "content": "Which region sells most?"}


@pytest.mark.asyncio
async def test_run_uses_config_model(make_transport):
    handler, transport = make_transport(json_reply(OPENAI_REPLY))
    config = AppConfig(model="llama3.2", env_file_path=None)
    await run("[]", None, API_URL, TOKEN, None, config, transport=transport)
    assert handler.last_json()["model"] == "llama3.2"


@pytest.mark.asyncio
async def test_run_none_document_sends_empty_array(make_transport, config):
    handler, transport = make_transport(json_reply(OPENAI_REPLY))
    result = await run(None, None, API_URL, TOKEN, None, config, transport=transport)
    assert result.status is Status.SUCCESS
    assert handler.last_json()["messages"][0]["content"] == DEFAULT_SYSTEM_PREFIX + "[]"


@pytest.mark.asyncio
@pytest.mark.parametrize("url,token", [("", "t"), (None, "t"), (API_URL, ""), (API_URL, None), ("  ", "  ")])
async def test_missing_url_or_token_makes_no_call(make_transport, config, url, token):
    handler, transport = make_transport(json_reply(OPENAI_REPLY))
    result = await run("[]", "q", url, token, None, config, transport=transport)
    assert handler.calls == 0
    assert result.status is Status.EXCEPTION
    assert result.error_kind == "validation"
    assert result.error_step == "validate"
    assert "required" in result.error_message


@pytest.mark.asyncio
async def test_http_error(make_transport, config):
    _, transport = make_transport(json_reply({"error": "invalid token"}, status_code=401))
    result = await run("[]", "q", API_URL, TOKEN, None, config, transport=transport)
    assert result.status is Status.ERROR
    assert result.status_code == 401
    assert result.answer_text is None
    assert json.loads(result.raw_body) == {"error": "invalid token"}
    assert result.request_size_bytes > 0


@pytest.mark.asyncio
async def test_connection_failure_is_error_not_success(make_transport, config):
    def refuse(request):
        raise httpx.ConnectError("connection refused")

    _, transport = make_transport(refuse)
    result = await run("[]", "q", API_URL, TOKEN, None, config, transport=transport)
    assert result.status is Status.ERROR
    assert result.status_code is None
    assert result.read_method is ReadMethod.FAILED
    assert result.error_kind == "connection_failure"


@pytest.mark.asyncio
async def test_degraded_body_still_returned(make_transport, config):
    _, transport = make_transport(lambda request: httpx.Response(200, stream=BrokenStream([b'{"message": "partial'])))
    result = await run("[]", "q", API_URL, TOKEN, None, config, transport=transport)
    assert result.status is Status.SUCCESS
    assert result.answer_text is None
    assert result.raw_body == '{"message": "partial'
    assert result.possibly_truncated is True


@pytest.mark.asyncio
async def test_timeout_while_streaming_is_connection_failure(make_transport, config):
    stream = BrokenStream([b'{"choices": ['], error=httpx.ReadTimeout("timed out reading body"))
    _, transport = make_transport(lambda request: httpx.Response(200, stream=stream))
    result = await run("[]", "q", API_URL, TOKEN, None, config, transport=transport)
    assert result.status is Status.ERROR
    assert result.status_code is None
    assert result.read_method is ReadMethod.FAILED
    assert result.error_kind == "connection_failure"


@pytest.mark.asyncio
async def test_unreadable_200_body_is_not_success(make_transport, config):
    _, transport = make_transport(lambda request: httpx.Response(200, stream=BrokenStream([])))
    result = await run("[]", "q", API_URL, TOKEN, None, config, transport=transport)
    assert result.status is Status.ERROR
    assert result.status_code == 200
    assert result.error_kind == "body_unreadable"
    assert json.loads(result.raw_body)["error"].startswith("Could not read response text")


@pytest.mark.asyncio
async def test_unexpected_failure_is_caught_with_step(make_transport, config, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("extractor exploded")

    monkeypatch.setattr(controller, "extract_answer", boom)
    _, transport = make_transport(json_reply(OPENAI_REPLY))
    result = await run("[]", "q", API_URL, TOKEN, None, config, transport=transport)
    assert result.status is Status.EXCEPTION
    assert result.error_kind == "unexpected"
    assert result.error_step == "extract"
    assert result.error_message == "extractor exploded"


@pytest.mark.asyncio
async def test_unexpected_failure_in_send(config, monkeypatch):
    async def boom(*args, **kwargs):
        raise KeyError("headers")

    monkeypatch.setattr(controller, "send", boom)
    result = await run("[]", "q", API_URL, TOKEN, None, config)
    assert result.status is Status.EXCEPTION
    assert result.error_step == "send"


@pytest.mark.asyncio
async def test_large_document_warns_but_sends(make_transport, caplog):
    caplog.set_level(logging.WARNING, logger="pipeline")
    config = AppConfig(large_document_warning_chars=100, env_file_path=None)
    handler, transport = make_transport(json_reply(OPENAI_REPLY))
    result = await run("[" + "1," * 100 + "1]", "q", API_URL, TOKEN, None, config, transport=transport)
    assert result.status is Status.SUCCESS
    assert handler.calls == 1
    assert any("very large" in r.getMessage() for r in caplog.records)


@pytest.mark.asyncio
async def test_ask_serializes_rows(make_transport, config):
    handler, transport = make_transport(json_reply({"message": "Two regions."}))
    source = FakeSource(rows=[{"Region": "North", "Sales": 15000}, {"Region": "South", "Sales": 8500}])
    result = await ask("SELECT * FROM sales", "How many regions?", API_URL, TOKEN, None, config, source=source, transport=transport)

    assert source.queries == ["SELECT * FROM sales"]
    assert result.status is Status.SUCCESS
    assert result.answer_text == "Two regions."
    assert json.loads(result.query_data_sent) == [{"Region": "North", "Sales": 15000}, {"Region": "South", "Sales": 8500}]
    system = handler.last_json()["messages"][0]["content"]
    assert system == DEFAULT_SYSTEM_PREFIX + result.query_data_sent


@pytest.mark.asyncio
async def test_ask_empty_rows_builds_well_formed_body(make_transport, config):
    handler, transport = make_transport(json_reply(OPENAI_REPLY))
    result = await ask("SELECT 1 WHERE 1=0", None, API_URL, TOKEN, None, config, source=FakeSource(rows=[]), transport=transport)
    assert result.query_data_sent == "[]"
    body = handler.last_json()
    assert len(body["messages"]) == 2
    assert body["messages"][0]["content"].endswith("[]")


@pytest.mark.asyncio
async def test_ask_query_failure(make_transport, config):
    handler, transport = make_transport(json_reply(OPENAI_REPLY))
    source = FakeSource(error=QueryExecutionError('relation "nope" does not exist'))
    result = await ask("SELECT * FROM nope", None, API_URL, TOKEN, None, config, source=source, transport=transport)
    assert handler.calls == 0
    assert result.status is Status.EXCEPTION
    assert result.error_kind == "query_execution"
    assert result.error_step == "query"
    assert "nope" in result.error_message


@pytest.mark.asyncio
async def test_ask_validates_before_querying(config):
    source = FakeSource(rows=[{"a": 1}])
    result = await ask("SELECT 1", None, "", TOKEN, None, config, source=source)
    assert source.queries == []
    assert result.error_kind == "validation"


@pytest.mark.asyncio
async def test_ask_without_source_or_database_url(config):
    result = await ask("SELECT 1", None, API_URL, TOKEN, None, config)
    assert result.status is Status.EXCEPTION
    assert result.error_kind == "validation"
    assert result.error_step == "query"


@pytest.mark.asyncio
async def test_ask_with_custom_serializer(make_transport, config):
    _, transport = make_transport(json_reply(OPENAI_REPLY))
    source = FakeSource(rows=[{"a": None, "b": 1}])
    result = await ask(
        "SELECT a, b FROM t", None, API_URL, TOKEN, None, config,
        source=source, serializer=RowSerializer(include_null_values=True), transport=transport,
    )
    assert json.loads(result.query_data_sent) == [{"a": None, "b": 1}]


@pytest.mark.asyncio
async def test_ask_malformed_database_url_is_query_failure(make_transport, config):
    handler, transport = make_transport(json_reply(OPENAI_REPLY))
    result = await ask(
        "SELECT 1", None, API_URL, TOKEN, None, config.with_overrides(database_url="not a url"), transport=transport
    )
    assert handler.calls == 0
    assert result.status is Status.EXCEPTION
    assert result.error_kind == "query_execution"
    assert result.error_step == "query"
