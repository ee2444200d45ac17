"""Test bridge: wire protocol, local file bridge and the runtime app client."""

from .client import RemoteExecutionClient
from .file_server import LocalFileBridge, create_file_bridge_app
from .protocol import (
    ExecutionRequest,
    ExecutionResponse,
    build_install_request,
    build_test_request,
    decode_execution_response,
    prepare_input,
    split_http_response,
)

__all__ = [
    "RemoteExecutionClient",
    "LocalFileBridge",
    "create_file_bridge_app",
    "ExecutionRequest",
    "ExecutionResponse",
    "build_install_request",
    "build_test_request",
    "decode_execution_response",
    "prepare_input",
    "split_http_response",
]
