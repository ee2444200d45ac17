import asyncio
import socket

import pytest

from vbookbridge.bridge.client import RemoteExecutionClient
from vbookbridge.network.address import TargetAddress
from vbookbridge.utils.exceptions import TimeoutError, TransportError


async def _serve(handler):
    server = await asyncio.start_server(handler, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    return server, TargetAddress("http", "127.0.0.1", port)


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.mark.asyncio
async def test_exchange_returns_everything_until_close():
    received = {}

    async def handler(reader, writer):
        received["request"] = await reader.readuntil(b"\r\n\r\n")
        writer.write(b"HTTP/1.1 200 OK\r\n\r\n")
        await writer.drain()
        writer.write(b'{"status":0,' + b" " * 10000 + b'"result":"ok"}')
        await writer.drain()
        writer.close()

    server, target = await _serve(handler)
    sent = []
    try:
        client = RemoteExecutionClient(target, chunk_size=512)
        data = await client.exchange(b"GET /test HTTP/1.1\r\nHost: x\r\n\r\n", on_sent=lambda: sent.append(True))
    finally:
        server.close()
        await server.wait_closed()

    assert received["request"] == b"GET /test HTTP/1.1\r\nHost: x\r\n\r\n"
    assert sent == [True]
    assert data.startswith(b"HTTP/1.1 200 OK\r\n\r\n{")
    assert data.endswith(b'"result":"ok"}')


@pytest.mark.asyncio
async def test_connection_refused_raises_transport_error():
    client = RemoteExecutionClient(TargetAddress("http", "127.0.0.1", _free_port()), connect_timeout=2)
    with pytest.raises(TransportError) as exc_info:
        await client.exchange(b"GET /test HTTP/1.1\r\n\r\n")
    assert exc_info.value.details["operation"] == "connect"


@pytest.mark.asyncio
async def test_silent_peer_raises_timeout():
    release = asyncio.Event()

    async def handler(reader, writer):
        await release.wait()
        writer.close()

    server, target = await _serve(handler)
    try:
        client = RemoteExecutionClient(target, response_timeout=0.2)
        with pytest.raises(TimeoutError) as exc_info:
            await client.exchange(b"GET /test HTTP/1.1\r\n\r\n")
        assert exc_info.value.code == "TIMEOUT"
    finally:
        release.set()
        server.close()
        await server.wait_closed()


@pytest.mark.asyncio
async def test_peer_closing_without_reply_returns_empty_bytes():
    async def handler(reader, writer):
        await reader.readuntil(b"\r\n\r\n")
        writer.close()

    server, target = await _serve(handler)
    try:
        data = await RemoteExecutionClient(target).exchange(b"GET /test HTTP/1.1\r\n\r\n")
    finally:
        server.close()
        await server.wait_closed()
    assert data == b""
