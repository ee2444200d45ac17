"""Raw TCP client for the runtime app's test endpoint.

One connection, one request, one reply: the request is written whole and the reply is
accumulated until the runtime app closes the connection.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

from loguru import logger

from vbookbridge.network.address import TargetAddress
from vbookbridge.utils.exceptions import TimeoutError, TransportError


class RemoteExecutionClient:
    """Single-shot request/response exchange over a raw stream socket."""

    def __init__(
        self,
        target: TargetAddress,
        *,
        connect_timeout: float | None = 10.0,
        response_timeout: float | None = 60.0,
        chunk_size: int = 4096,
    ):
        self.target = target
        self.connect_timeout = connect_timeout
        self.response_timeout = response_timeout
        self.chunk_size = chunk_size

    async def exchange(self, payload: bytes, *, on_sent: Callable[[], None] | None = None) -> bytes:
        """Send payload, then return every byte received until the peer closes.

        Raises TransportError on connect/read failures and TimeoutError when the
        response deadline passes; no retry is attempted.
        """
        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(self.target.host, self.target.port),
                timeout=self.connect_timeout,
            )
        except asyncio.TimeoutError as e:
            raise TimeoutError(f"connect to {self.target.url}", self.connect_timeout or 0) from e
        except OSError as e:
            raise TransportError("connect", self.target.url, str(e) or e.__class__.__name__) from e

        logger.info(f"Connected to runtime app {self.target.host}:{self.target.port}")
        try:
            if self.response_timeout is None:
                return await self._send_and_collect(reader, writer, payload, on_sent)
            try:
                return await asyncio.wait_for(
                    self._send_and_collect(reader, writer, payload, on_sent),
                    timeout=self.response_timeout,
                )
            except asyncio.TimeoutError as e:
                raise TimeoutError(f"response from {self.target.url}", self.response_timeout) from e
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except OSError as e:
                logger.debug(f"Ignoring error while closing connection: {e}")
            logger.info("Disconnected from runtime app")

    async def _send_and_collect(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        payload: bytes,
        on_sent: Callable[[], None] | None,
    ) -> bytes:
        try:
            writer.write(payload)
            await writer.drain()
        except OSError as e:
            raise TransportError("send", self.target.url, str(e) or e.__class__.__name__) from e
        if on_sent is not None:
            on_sent()

        chunks: list[bytes] = []
        while True:
            try:
                chunk = await reader.read(self.chunk_size)
            except OSError as e:
                raise TransportError("read", self.target.url, str(e) or e.__class__.__name__) from e
            if not chunk:
                break
            chunks.append(chunk)
        data = b"".join(chunks)
        logger.debug(f"Received {len(data)} bytes from runtime app")
        return data
