from traffic_proxy.log_store import (
    ErrorRecord,
    RequestRecord,
    ResponseRecord,
    decode_body,
    encode_body,
)
from traffic_proxy.utils import parse_timestamp


def test_encode_body_empty_is_none():
    assert encode_body(b"") is None
    assert encode_body(None) is None


def test_encode_body_lists_byte_values():
    assert encode_body(b"\x00\xffA") == [0, 255, 65]


def test_decode_body_of_absent_body_is_empty():
    assert decode_body(None) == b""


def test_capture_assigns_event_timestamp():
    record = RequestRecord.capture("GET", "/p", "http://t/p", {"a": "b"}, b"")

    assert record.timestamp.endswith("Z")
    assert parse_timestamp(record.timestamp).year >= 2024
    assert record.body is None


def test_response_capture_keeps_status_and_body():
    record = ResponseRecord.capture(201, "/p", {"content-type": "text/plain"}, b"ok")

    assert record.status == 201
    assert decode_body(record.body) == b"ok"


def test_kinds():
    assert RequestRecord.kind == "request"
    assert ResponseRecord.kind == "response"
    assert ErrorRecord.kind == "error"

