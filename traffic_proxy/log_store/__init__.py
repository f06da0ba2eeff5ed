from .models import (
    ErrorRecord,
    LogQueryResult,
    LogRecord,
    LogStreamInfo,
    LogStreamList,
    RequestRecord,
    ResponseRecord,
    decode_body,
    encode_body,
)
from .store import DEFAULT_STREAM, LOG_SUFFIX, LogStore, stream_name

__all__ = [
    "DEFAULT_STREAM",
    "LOG_SUFFIX",
    "ErrorRecord",
    "LogQueryResult",
    "LogRecord",
    "LogStore",
    "LogStreamInfo",
    "LogStreamList",
    "RequestRecord",
    "ResponseRecord",
    "decode_body",
    "encode_body",
    "stream_name",
]
