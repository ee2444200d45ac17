"""Session orchestrator: sequences one test (or install) run against the runtime app.

    idle -> address_resolving -> bridge_starting -> request_sent
         -> awaiting_response -> decoding -> reported

Any failure before a reply is decoded ends in ``aborted``. The file bridge is always
stopped before the reply is decoded, whatever happened on the connection.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from loguru import logger

from vbookbridge.bridge.client import RemoteExecutionClient
from vbookbridge.bridge.file_server import LocalFileBridge
from vbookbridge.bridge.protocol import (
    ExecutionRequest,
    ExecutionResponse,
    build_test_request,
    decode_execution_response,
    prepare_input,
)
from vbookbridge.config.schema import Config
from vbookbridge.network.address import TargetAddress, parse_target_address
from vbookbridge.network.interfaces import (
    InterfaceCandidate,
    callback_url,
    enumerate_ipv4_addresses,
    select_callback_address,
)
from vbookbridge.project.installer import prepare_plugin_data, send_install
from vbookbridge.project.validator import SRC_DIRNAME, find_project_root, validate_for_testing
from vbookbridge.session.store import MemorySessionStore, ProjectSession, SessionStore, project_id_for
from vbookbridge.utils.exceptions import (
    BusyError,
    ConfigurationError,
    ProtocolError,
    VbookBridgeError,
    sanitize_error_message,
)


class SessionState(str, Enum):
    IDLE = "idle"
    ADDRESS_RESOLVING = "address_resolving"
    BRIDGE_STARTING = "bridge_starting"
    REQUEST_SENT = "request_sent"
    AWAITING_RESPONSE = "awaiting_response"
    DECODING = "decoding"
    REPORTED = "reported"
    ABORTED = "aborted"


@dataclass(slots=True)
class RunReport:
    """Everything the front end needs to show the outcome of one test run."""

    script_path: Path
    project_root: Path | None = None
    state: SessionState = SessionState.IDLE
    states: list[SessionState] = field(default_factory=list)
    target: TargetAddress | None = None
    callback_url: str | None = None
    request: ExecutionRequest | None = None
    response: ExecutionResponse | None = None
    raw_response: str | None = None
    error: VbookBridgeError | None = None

    @property
    def aborted(self) -> bool:
        return self.state == SessionState.ABORTED

    @property
    def ok(self) -> bool:
        return (
            self.state == SessionState.REPORTED
            and self.error is None
            and self.response is not None
            and self.response.ok
        )


class SessionOrchestrator:
    """Runs test/install invocations; at most one in flight per project."""

    def __init__(
        self,
        config: Config | None = None,
        store: SessionStore | None = None,
        *,
        interface_provider: Callable[[], Iterable[InterfaceCandidate]] | None = None,
        bridge_factory: Callable[..., LocalFileBridge] = LocalFileBridge,
        client_factory: Callable[..., RemoteExecutionClient] = RemoteExecutionClient,
        install_sender: Callable[..., Any] = send_install,
        on_state: Callable[[SessionState], None] | None = None,
    ):
        self.config = config or Config()
        self.store = store or MemorySessionStore()
        self.interface_provider = interface_provider or (
            lambda: enumerate_ipv4_addresses(self.config.resolver.skip_interface_patterns)
        )
        self.bridge_factory = bridge_factory
        self.client_factory = client_factory
        self.install_sender = install_sender
        self.on_state = on_state
        self._in_flight: set[str] = set()

    def is_busy(self, project_root: Path) -> bool:
        return project_id_for(project_root) in self._in_flight

    def resolve_target(self, session: ProjectSession, address: str | None = None) -> TargetAddress:
        """Explicit address wins over the remembered one."""
        raw = address if address else session.target_url
        if not raw:
            raise ConfigurationError("No target address set; pass --app-url (e.g. http://192.168.1.100:8080)")
        return parse_target_address(raw, default_port=self.config.address.default_port)

    async def run_test(
        self,
        script_path: Path,
        *,
        address: str | None = None,
        raw_input: str | None = None,
    ) -> RunReport:
        """Run one script on the runtime app and return the report; never raises VbookBridgeError."""
        script_path = Path(script_path).expanduser().resolve()
        report = RunReport(script_path=script_path)
        self._enter(report, SessionState.IDLE)
        try:
            if not script_path.is_file():
                raise ConfigurationError("No script to test", path=str(script_path))
            root = find_project_root(script_path)
            validate_for_testing(root)
        except VbookBridgeError as e:
            return self._abort(report, e)
        report.project_root = root

        pid = project_id_for(root)
        if pid in self._in_flight:
            return self._abort(report, BusyError(pid))
        self._in_flight.add(pid)
        try:
            return await self._run_test(report, root, script_path, address, raw_input)
        finally:
            self._in_flight.discard(pid)

    async def _run_test(
        self,
        report: RunReport,
        root: Path,
        script_path: Path,
        address: str | None,
        raw_input: str | None,
    ) -> RunReport:
        cfg = self.config
        session = self.store.load(root)

        self._enter(report, SessionState.ADDRESS_RESOLVING)
        try:
            target = self.resolve_target(session, address)
            if session.target_url != target.url:
                session.target_url = target.url
                self.store.save(root, session)
            bridge_port = target.bridge_port(cfg.address.bridge_port_offset)
            chosen = select_callback_address(
                target,
                self.interface_provider(),
                prefix_octets=cfg.resolver.prefix_octets,
                private_weight=cfg.resolver.private_weight,
                prefix_weight=cfg.resolver.prefix_weight,
            )
            script = _read_script(script_path)
            raw = raw_input if raw_input is not None else session.inputs.get(script_path.name, "")
            session.inputs[script_path.name] = raw
            self.store.save(root, session)
        except VbookBridgeError as e:
            return self._abort(report, e)

        report.target = target
        report.callback_url = callback_url(chosen.ip, bridge_port)
        logger.info(f"Target {target.url}, callback {report.callback_url}")

        request = ExecutionRequest(
            ip=report.callback_url,
            root=f"{root.name}/{SRC_DIRNAME}",
            script=script,
            input=prepare_input(raw),
        )
        report.request = request
        logger.info(f"Params: {request.input}")

        self._enter(report, SessionState.BRIDGE_STARTING)
        bridge = self.bridge_factory(
            root.parent,
            bridge_port,
            host=cfg.bridge.bind_host,
            log_level=cfg.bridge.log_level,
            shutdown_timeout=cfg.bridge.shutdown_timeout,
        )
        try:
            await bridge.start()
        except VbookBridgeError as e:
            await bridge.stop()
            return self._abort(report, e)

        client = self.client_factory(
            target,
            connect_timeout=cfg.client.connect_timeout,
            response_timeout=cfg.client.response_timeout,
            chunk_size=cfg.client.chunk_size,
        )
        error: VbookBridgeError | None = None
        raw_bytes = b""
        try:
            self._enter(report, SessionState.REQUEST_SENT)
            raw_bytes = await client.exchange(
                build_test_request(target.host, request),
                on_sent=lambda: self._enter(report, SessionState.AWAITING_RESPONSE),
            )
        except VbookBridgeError as e:
            error = e
        finally:
            await bridge.stop()
        if error is not None:
            return self._abort(report, error)

        self._enter(report, SessionState.DECODING)
        report.raw_response = raw_bytes.decode("utf-8", errors="replace")
        try:
            report.response = decode_execution_response(raw_bytes)
        except ProtocolError as e:
            logger.warning(f"Could not decode response: {e.message}")
            report.error = e
        self._enter(report, SessionState.REPORTED)
        return report

    async def run_install(self, project_path: Path, *, address: str | None = None) -> dict[str, Any]:
        """Validate, package and send the project to the runtime app's install endpoint."""
        root = Path(project_path).expanduser().resolve()
        pid = project_id_for(root)
        if pid in self._in_flight:
            raise BusyError(pid)
        self._in_flight.add(pid)
        try:
            data = prepare_plugin_data(root)
            session = self.store.load(root)
            target = self.resolve_target(session, address)
            session.target_url = target.url
            self.store.save(root, session)
            result = await self.install_sender(target, data, timeout=self.config.client.install_timeout)
            logger.info(f"Extension installed to {target.url}")
            return result
        finally:
            self._in_flight.discard(pid)

    def _enter(self, report: RunReport, state: SessionState) -> None:
        report.state = state
        report.states.append(state)
        logger.debug(f"Session state -> {state.value}")
        if self.on_state is not None:
            self.on_state(state)

    def _abort(self, report: RunReport, error: VbookBridgeError) -> RunReport:
        report.error = error
        logger.warning(f"Run aborted [{error.code}]: {sanitize_error_message(error.message)}")
        self._enter(report, SessionState.ABORTED)
        return report


def _read_script(script_path: Path) -> str:
    try:
        return script_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"Failed to read script file: {e}", path=str(script_path)) from e
