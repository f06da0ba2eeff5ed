from typing import Any, ClassVar, Dict, List, Literal, Optional, Union

from pydantic import BaseModel

from traffic_proxy.utils import utc_timestamp

LogEntryKind = Literal["request", "response", "error"]
LOG_ENTRY_KINDS = ("request", "response", "error")


def encode_body(body: Optional[bytes]) -> Optional[List[int]]:
    """Byte bodies are logged as a list of byte values; an empty body is logged as null."""
    if not body:
        return None
    return list(body)


def decode_body(value: Optional[List[int]]) -> bytes:
    if not value:
        return b""
    return bytes(value)


class RequestRecord(BaseModel):
    kind: ClassVar[str] = "request"

    timestamp: str
    method: str
    path: str
    target: str
    headers: Dict[str, str]
    body: Optional[List[int]] = None

    @classmethod
    def capture(
        cls, method: str, path: str, target_url: str, headers: Dict[str, str], body: bytes
    ) -> "RequestRecord":
        return cls(
            timestamp=utc_timestamp(),
            method=method,
            path=path,
            target=target_url,
            headers=headers,
            body=encode_body(body),
        )


class ResponseRecord(BaseModel):
    kind: ClassVar[str] = "response"

    timestamp: str
    status: int
    path: str
    headers: Dict[str, str]
    body: Optional[List[int]] = None

    @classmethod
    def capture(
        cls, status: int, path: str, headers: Dict[str, str], body: bytes
    ) -> "ResponseRecord":
        return cls(
            timestamp=utc_timestamp(),
            status=status,
            path=path,
            headers=headers,
            body=encode_body(body),
        )


class ErrorRecord(BaseModel):
    kind: ClassVar[str] = "error"

    timestamp: str
    error: str
    path: str
    target: str

    @classmethod
    def capture(cls, error: str, path: str, target_url: str) -> "ErrorRecord":
        return cls(timestamp=utc_timestamp(), error=error, path=path, target=target_url)


LogRecord = Union[RequestRecord, ResponseRecord, ErrorRecord]


class LogStreamInfo(BaseModel):
    name: str
    size: int
    modified: str


class LogStreamList(BaseModel):
    files: List[LogStreamInfo]


class LogQueryResult(BaseModel):
    entries: List[Dict[str, Any]]
    total: int
    offset: int
    limit: int
