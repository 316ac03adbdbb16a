#!/usr/bin/env python3
"""Run a read query, send the rows plus a question to a chat-completion API, print the answer and the trace."""
import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from query_insight.core.config.loader import load_config
from query_insight.core.contracts.outcome import AnswerResult, Status
from query_insight.core.exceptions import ConfigError
from query_insight.pipeline.controller import ask


def _trunc(s: str, max_len: int = 100) -> str:
    s = str(s)
    return (s[:max_len] + "…") if len(s) > max_len else s


def _print_inputs(query: str, question: str | None, url: str | None, model: str) -> None:
    print("========================================", flush=True)
    print("--- INPUT PARAMETERS ---", flush=True)
    print("========================================", flush=True)
    print("SQL Query:", query, flush=True)
    print("User Question:", question or "(No question provided - will use default)", flush=True)
    print("API URL:", url or "(not set)", flush=True)
    print("Model:", model, flush=True)
    print("========================================", flush=True)


def _print_result(result: AnswerResult, trace: bool) -> None:
    print("---", flush=True)
    print("Status:", result.status.value, flush=True)
    print("HTTP Status Code:", result.status_code if result.status_code is not None else "NULL", flush=True)
    if result.read_method is not None:
        truncated = " (possibly truncated)" if result.possibly_truncated else ""
        print(f"Read method: {result.read_method.value}{truncated}", flush=True)

    if result.status is Status.SUCCESS:
        if result.answer_text is not None:
            print("AI Response:", flush=True)
            print(result.answer_text, flush=True)
        else:
            print("AI message not extracted (check Full_API_Response)", flush=True)
            print(_trunc(result.raw_body or "", 2000), flush=True)
    elif result.status is Status.ERROR:
        if result.status_code is None:
            print("CRITICAL: the HTTP request failed completely (no response).", file=sys.stderr)
            print(f"Request size sent: {result.request_size_kb} KB", file=sys.stderr)
        else:
            print(f"HTTP Error: {result.status_code} {result.status_text or ''}", file=sys.stderr)
        print("Error Response:", _trunc(result.raw_body or "", 2000), file=sys.stderr)
    else:
        print(f"Exception ({result.error_kind}) at step {result.error_step}: {result.error_message}", file=sys.stderr)

    if trace and result.query_data_sent is not None:
        print("---", flush=True)
        print(f"Query data sent ({len(result.query_data_sent)} characters):", flush=True)
        print(_trunc(result.query_data_sent, 500), flush=True)


def main():
    parser = argparse.ArgumentParser(description="Ask a chat-completion model a question about the result of a SQL query.")
    parser.add_argument("query", nargs="*", help="SQL query text (or pass as single argument)")
    parser.add_argument("--question", "-q", default=None, help="Question about the data (default: generic analysis prompt)")
    parser.add_argument("--url", default=None, help="Chat-completion endpoint URL (default: QUERY_INSIGHT_API_URL)")
    parser.add_argument("--token", default=None, help="Bearer token (default: QUERY_INSIGHT_API_TOKEN)")
    parser.add_argument("--model", default=None, help="Model name")
    parser.add_argument("--database-url", default=None, help="SQLAlchemy/Postgres URL (default: QUERY_INSIGHT_DATABASE_URL)")
    parser.add_argument("--config", default=None, help="JSON config path")
    parser.add_argument("--insecure", action="store_true", help="Skip TLS certificate validation (self-signed internal endpoints only)")
    parser.add_argument("--trace", action="store_true", help="Log every pipeline step and print the data sent")
    parser.add_argument("--json", action="store_true", help="Print the result record as JSON")
    args = parser.parse_args()
    query = " ".join(args.query).strip()
    if not query:
        print("Usage: python scripts/query_cli.py \"SELECT ...\" --question \"Your question\"", file=sys.stderr)
        sys.exit(1)

    logging.basicConfig(
        level=logging.INFO if args.trace else logging.WARNING,
        format="%(asctime)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
    )

    try:
        config = load_config(args.config, project_root=ROOT)
    except ConfigError as e:
        print(f"Config error: {e}", file=sys.stderr)
        sys.exit(1)
    config = config.with_overrides(
        api_url=args.url,
        api_token=args.token,
        model=args.model,
        database_url=args.database_url,
        verify_tls=False if args.insecure else None,
    )

    _print_inputs(query, args.question, config.api_url, config.model)
    result = asyncio.run(
        ask(query, args.question, url=config.api_url, token=config.api_token, model=config.model, config=config)
    )

    if args.json:
        print(json.dumps(result.to_record(), indent=2, ensure_ascii=False), flush=True)
    else:
        _print_result(result, args.trace)
    sys.exit(0 if result.status is Status.SUCCESS else 1)


if __name__ == "__main__":
    main()
