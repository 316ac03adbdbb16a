from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

STATUS_UNREADABLE = -1  # server responded but the status code could not be read


class ReadMethod(str, Enum):
    STREAM = "stream"
    HEADER_ONLY = "header_only"
    TRUNCATED_TEXT = "truncated_text"
    FAILED = "failed"


class Status(str, Enum):
    SUCCESS = "Success"
    ERROR = "Error"
    EXCEPTION = "Exception"


class HttpOutcome(BaseModel):
    """What the response reader got back. status_code None means no response was obtained."""

    model_config = ConfigDict(frozen=True)

    status_code: int | None = None
    status_text: str | None = None
    raw_body: str | None = None
    read_method: ReadMethod = ReadMethod.FAILED
    possibly_truncated: bool = False
    headers: dict[str, str] = Field(default_factory=dict)
    error: str | None = None


class AnswerResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Status
    status_code: int | None = None
    status_text: str | None = None
    answer_text: str | None = None
    raw_body: str | None = None
    request_size_bytes: int = 0
    query_data_sent: str | None = None
    read_method: ReadMethod | None = None
    possibly_truncated: bool = False
    error_kind: str | None = None  # validation | query_execution | connection_failure | status_unreadable | http_error | body_unreadable | unexpected
    error_message: str | None = None
    error_step: str | None = None

    @property
    def request_size_kb(self) -> int:
        return self.request_size_bytes // 1024

    def to_record(self) -> dict[str, Any]:
        """Flat result row: the surface callers and the CLI print."""
        record: dict[str, Any] = {
            "Status": self.status.value,
            "StatusCode": self.status_code,
            "AI_Response": self.answer_text,
            "Full_API_Response": self.raw_body,
            "Query_Data_Sent": self.query_data_sent,
        }
        if self.status is Status.ERROR:
            record["StatusText"] = self.status_text
            record["Request_Size_Sent"] = f"{self.request_size_kb} KB"
        elif self.status is Status.EXCEPTION:
            record["ErrorKind"] = self.error_kind
            record["ErrorMessage"] = self.error_message
            record["ErrorStep"] = self.error_step
        return record
