import base64
import json

import pytest

from vbookbridge.bridge.protocol import (
    ExecutionRequest,
    build_install_request,
    build_test_request,
    decode_data_header,
    decode_execution_response,
    encode_data_header,
    prepare_input,
    split_http_response,
)
from vbookbridge.utils.exceptions import ProtocolError


def _header_payload(raw: bytes) -> dict:
    for line in raw.decode("ascii").split("\r\n"):
        if line.startswith("data: "):
            return json.loads(base64.b64decode(line[len("data: "):]).decode("utf-8"))
    raise AssertionError("no data header")


def test_prepare_input():
    assert prepare_input("a, b") == [["a", "b"]]
    assert prepare_input("x") == ["x"]
    assert prepare_input("  https://demo.example.com/book/1  ") == ["https://demo.example.com/book/1"]
    assert prepare_input("") == [""]
    assert prepare_input(None) == [""]


def test_build_test_request_framing():
    request = ExecutionRequest(
        ip="http://192.168.1.42:8070",
        root="demo-ext/src",
        script="function execute() { return 'đọc truyện'; }",
        input=["x"],
    )
    raw = build_test_request("192.168.1.100", request)

    assert raw.startswith(b"GET /test HTTP/1.1\r\nHost: 192.168.1.100\r\nConnection: close\r\ndata: ")
    assert raw.endswith(b"\r\n\r\n")
    assert _header_payload(raw) == {
        "ip": "http://192.168.1.42:8070",
        "root": "demo-ext/src",
        "language": "javascript",
        "script": "function execute() { return 'đọc truyện'; }",
        "input": ["x"],
    }


def test_build_install_request_uses_install_path():
    raw = build_install_request("10.0.0.5", {"id": "debug-x"})
    assert raw.startswith(b"GET /install HTTP/1.1\r\n")
    assert _header_payload(raw) == {"id": "debug-x"}


def test_data_header_is_compact_json():
    header = encode_data_header({"a": 1, "b": [1, 2]})
    assert base64.b64decode(header) == b'{"a":1,"b":[1,2]}'
    assert decode_data_header(header) == {"a": 1, "b": [1, 2]}


def test_decode_success_response():
    raw = b'HTTP/1.1 200 OK\r\nContent-Type: application/json\r\n\r\n{"status":0,"result":"{\\"name\\":\\"Demo\\"}","log":"fetched 1 page"}'
    response = decode_execution_response(raw)
    assert response.ok
    assert response.status == 0
    assert response.result == '{"name":"Demo"}'
    assert response.parsed_result() == {"name": "Demo"}
    assert response.log == "fetched 1 page"
    assert response.exception is None


def test_decode_script_failure_is_not_an_error():
    raw = 'HTTP/1.1 200 OK\r\n\r\n{"status":1,"result":"","log":"","exception":"TypeError: x is undefined"}'
    response = decode_execution_response(raw)
    assert not response.ok
    assert response.status == 1
    assert response.exception == "TypeError: x is undefined"
    assert response.parsed_result() is None


def test_decode_accepts_bare_newline_separator_and_non_string_result():
    response = decode_execution_response('HTTP/1.1 200 OK\n\n{"status":"0","result":[1,2]}')
    assert response.status == 0
    assert response.result == "[1, 2]"
    assert response.parsed_result() == [1, 2]


@pytest.mark.parametrize(
    "raw",
    [
        b"",
        b"HTTP/1.1 200 OK",
        b"HTTP/1.1 200 OK\r\n\r\n<html>oops</html>",
        b"HTTP/1.1 200 OK\r\n\r\n[1, 2, 3]",
        b'HTTP/1.1 200 OK\r\n\r\n{"result": "no status"}',
    ],
)
def test_undecodable_responses_raise_protocol_error_with_raw(raw):
    with pytest.raises(ProtocolError) as exc_info:
        decode_execution_response(raw)
    assert exc_info.value.raw == raw.decode("utf-8")
    assert exc_info.value.code == "PROTOCOL_ERROR"


def test_split_http_response_headers():
    parsed = split_http_response(b"HTTP/1.1 201 Created\r\nX-Thing: a:b\r\n\r\nbody")
    assert parsed.status_code == 201
    assert parsed.headers == {"x-thing": "a:b"}
    assert parsed.body == "body"


def test_decode_quoted_result_and_empty_exception():
    raw = b'HTTP/1.1 200 OK\r\n\r\n{"status":0,"result":"\\"42\\"","log":"ok","exception":""}'
    response = decode_execution_response(raw)
    assert response.parsed_result() == "42"
    assert response.exception is None
    assert response.log == "ok"
