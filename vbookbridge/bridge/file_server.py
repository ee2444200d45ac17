"""Local file bridge: short-lived HTTP endpoint the runtime app pulls project files from.

``GET /?file=<name>&root=<dir>`` answers with the base64 text of
``<serve_root>/<root>/<file>``. ``serve_root`` is the project's parent directory, so a
runtime app asking for ``root=<project>/src`` lands inside the project.
"""

from __future__ import annotations

import asyncio
import base64
import socket
from pathlib import Path

import uvicorn
from fastapi import FastAPI
from fastapi.responses import PlainTextResponse, Response
from loguru import logger

from vbookbridge.utils.exceptions import BridgeError

MISSING_PARAMS_MESSAGE = "Missing required query parameters: file and root"
READ_ERROR_MESSAGE = "Error reading the file."
ACCESS_DENIED_MESSAGE = "Access denied: file outside project directory"


def resolve_bridge_path(serve_root: Path, root: str, file: str) -> Path | None:
    """Join serve_root/root/file; None when the result escapes serve_root."""
    base = serve_root.resolve()
    target = (base / root / file).resolve()
    if target != base and base not in target.parents:
        return None
    return target


def create_file_bridge_app(serve_root: Path) -> FastAPI:
    """Build the FastAPI app; serve_root is captured once and never mutated."""
    serve_root = Path(serve_root).resolve()
    app = FastAPI(title="vbookbridge file bridge", docs_url=None, redoc_url=None, openapi_url=None)

    @app.get("/")
    def serve_file(file: str | None = None, root: str | None = None) -> Response:
        if not file or not root:
            return PlainTextResponse(MISSING_PARAMS_MESSAGE, status_code=400)
        path = resolve_bridge_path(serve_root, root, file)
        if path is None:
            logger.warning(f"File bridge refused path outside {serve_root}: root={root!r} file={file!r}")
            return PlainTextResponse(ACCESS_DENIED_MESSAGE, status_code=403)
        try:
            data = path.read_bytes()
        except OSError as e:
            logger.warning(f"File bridge could not read {path}: {e}")
            return PlainTextResponse(READ_ERROR_MESSAGE, status_code=500)
        encoded = base64.b64encode(data)
        logger.debug(f"File bridge served {path} ({len(data)} bytes)")
        return Response(
            content=encoded,
            media_type="text/plain",
            headers={"Content-Length": str(len(encoded))},
        )

    return app


class LocalFileBridge:
    """Owns one listening socket for the duration of a single test run."""

    def __init__(
        self,
        serve_root: Path,
        port: int,
        *,
        host: str = "0.0.0.0",
        log_level: str = "warning",
        shutdown_timeout: float = 2.0,
    ):
        self.serve_root = Path(serve_root)
        self.port = port
        self.host = host
        self.log_level = log_level
        self.shutdown_timeout = shutdown_timeout
        self.close_count = 0
        self._sock: socket.socket | None = None
        self._server: uvicorn.Server | None = None
        self._task: asyncio.Task[None] | None = None
        self._stopped = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._stopped

    def _bind(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self.host, self.port))
            sock.listen(128)
            sock.setblocking(False)
        except OSError as e:
            sock.close()
            raise BridgeError(f"File bridge could not listen on {self.host}:{self.port}: {e}", port=self.port) from e
        return sock

    async def start(self) -> None:
        """Bind and serve; returns once uvicorn accepts connections."""
        if self._task is not None:
            raise BridgeError("File bridge already started", port=self.port)
        self._sock = self._bind()
        if self.port == 0:
            self.port = self._sock.getsockname()[1]
        config = uvicorn.Config(
            create_file_bridge_app(self.serve_root),
            log_level=self.log_level,
            lifespan="off",
            access_log=False,
            timeout_graceful_shutdown=self.shutdown_timeout,
        )
        self._server = uvicorn.Server(config)
        self._task = asyncio.create_task(self._server.serve(sockets=[self._sock]))
        while not self._server.started:
            if self._task.done():
                exc = self._task.exception()
                await self.stop()
                raise BridgeError(f"File bridge exited during startup: {exc}", port=self.port)
            await asyncio.sleep(0.01)
        logger.info(f"File bridge listening on {self.host}:{self.port} serving {self.serve_root}")

    async def stop(self) -> None:
        """Stop serving and close the listening socket. Safe to call more than once."""
        if self._stopped:
            return
        self._stopped = True
        if self._server is not None:
            self._server.should_exit = True
        if self._task is not None:
            try:
                await self._task
            except Exception as e:
                logger.warning(f"File bridge shut down with error: {e}")
        if self._sock is not None:
            self._sock.close()
            self.close_count += 1
        logger.info(f"File bridge on port {self.port} stopped")
