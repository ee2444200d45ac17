"""Wire protocol for the vbook app test/install endpoints.

The request is hand-built HTTP-looking text written to a raw TCP socket; the whole
payload travels base64-encoded in a single ``data`` header. The reply is parsed loosely:
everything after the first blank line is expected to be a JSON object.
"""

from __future__ import annotations

import base64
import json
from dataclasses import dataclass, field
from typing import Any

from vbookbridge.utils.exceptions import ProtocolError

SCRIPT_LANGUAGE = "javascript"
TEST_PATH = "/test"
INSTALL_PATH = "/install"


@dataclass(slots=True)
class ExecutionRequest:
    """Script execution request sent to the runtime app."""

    ip: str
    root: str
    script: str
    input: list[Any]
    language: str = SCRIPT_LANGUAGE

    def to_payload(self) -> dict[str, Any]:
        return {
            "ip": self.ip,
            "root": self.root,
            "language": self.language,
            "script": self.script,
            "input": self.input,
        }


@dataclass(slots=True)
class ExecutionResponse:
    """Decoded reply of a script execution."""

    status: int
    result: str | None = None
    log: str = ""
    exception: str | None = None
    body: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == 0

    def parsed_result(self) -> Any:
        """Result re-parsed as JSON when possible, otherwise the raw string."""
        if self.result is None or self.result == "":
            return None
        if not isinstance(self.result, str):
            return self.result
        try:
            return json.loads(self.result)
        except json.JSONDecodeError:
            return self.result


@dataclass(slots=True)
class RawHttpResponse:
    """Loosely parsed HTTP-shaped reply."""

    status_line: str
    status_code: int | None
    headers: dict[str, str]
    body: str


def prepare_input(raw: str | None) -> list[Any]:
    """Turn the operator's raw input into the ``input`` field.

    ``"a, b"`` becomes ``[["a", "b"]]``; ``"x"`` becomes ``["x"]``.
    """
    text = (raw or "").strip()
    if "," in text:
        return [[part.strip() for part in text.split(",")]]
    return [text]


def encode_data_header(payload: dict[str, Any]) -> str:
    """Base64 of the compact UTF-8 JSON payload."""
    body = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
    return base64.b64encode(body.encode("utf-8")).decode("ascii")


def decode_data_header(value: str) -> dict[str, Any]:
    """Inverse of encode_data_header (used by fakes of the runtime app)."""
    data = json.loads(base64.b64decode(value).decode("utf-8"))
    if not isinstance(data, dict):
        raise ProtocolError("data header is not a JSON object", raw=value)
    return data


def _frame_request(path: str, host: str, payload: dict[str, Any]) -> bytes:
    lines = [
        f"GET {path} HTTP/1.1",
        f"Host: {host}",
        "Connection: close",
        f"data: {encode_data_header(payload)}",
        "",
        "",
    ]
    return "\r\n".join(lines).encode("ascii")


def build_test_request(host: str, request: ExecutionRequest) -> bytes:
    return _frame_request(TEST_PATH, host, request.to_payload())


def build_install_request(host: str, metadata: dict[str, Any]) -> bytes:
    return _frame_request(INSTALL_PATH, host, metadata)


def split_http_response(raw: bytes | str) -> RawHttpResponse:
    """Split a reply into status line, headers and body at the first blank line."""
    text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
    head, sep, body = text.partition("\r\n\r\n")
    if not sep:
        head, sep, body = text.partition("\n\n")
    if not sep:
        raise ProtocolError("Invalid HTTP response format (no header/body separator)", raw=text)

    lines = head.replace("\r\n", "\n").split("\n")
    status_line = lines[0].strip()
    status_code: int | None = None
    parts = status_line.split(" ", 2)
    if len(parts) >= 2 and parts[0].upper().startswith("HTTP/") and parts[1].isdigit():
        status_code = int(parts[1])

    headers: dict[str, str] = {}
    for line in lines[1:]:
        name, colon, value = line.partition(":")
        if colon and name.strip():
            headers[name.strip().lower()] = value.strip()
    return RawHttpResponse(status_line=status_line, status_code=status_code, headers=headers, body=body)


def decode_execution_response(raw: bytes | str) -> ExecutionResponse:
    """Decode the runtime app reply; ProtocolError keeps the raw text for display."""
    text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
    if not text:
        raise ProtocolError("No response received", raw=text)
    parsed = split_http_response(text)
    body_text = parsed.body.replace("\x00", "").strip()
    try:
        body = json.loads(body_text)
    except json.JSONDecodeError as exc:
        raise ProtocolError(f"Response body is not valid JSON: {exc}", raw=text) from exc
    if not isinstance(body, dict):
        raise ProtocolError("Response body is not a JSON object", raw=text)

    try:
        status = int(body.get("status"))
    except (TypeError, ValueError) as exc:
        raise ProtocolError(f"Response has no integer status: {body.get('status')!r}", raw=text) from exc

    result = body.get("result")
    exception = body.get("exception")
    log = body.get("log")
    return ExecutionResponse(
        status=status,
        result=result if result is None or isinstance(result, str) else json.dumps(result, ensure_ascii=False),
        log="" if log is None else str(log),
        exception=str(exception) if exception else None,
        body=body,
    )
