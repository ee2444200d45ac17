"""CLI commands for vbookbridge.

The CLI is the only front end: ``test`` runs one extension script on a vbook app over the
LAN, ``install``/``build``/``validate`` handle the project as a whole, ``interfaces``
shows how the callback address would be chosen, and the ``config`` group edits settings.
"""

import asyncio
import json
import sys
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table
from rich.text import Text

from vbookbridge import __logo__, __version__
from vbookbridge.cli.command_groups.config_commands import register_config_commands
from vbookbridge.cli.shared.logging_utils import configure_logging
from vbookbridge.cli.shared.network_utils import bridge_port_status
from vbookbridge.config.access import get_config
from vbookbridge.config.schema import Config
from vbookbridge.session.orchestrator import RunReport, SessionOrchestrator, SessionState
from vbookbridge.session.store import JsonFileSessionStore
from vbookbridge.utils.exceptions import (
    ConfigurationError,
    ProtocolError,
    VbookBridgeError,
    sanitize_error_message,
)

app = typer.Typer(
    name="vbookbridge",
    help=f"{__logo__} vbookbridge - test and install vbook extensions on a device",
    no_args_is_help=True,
)

console = Console()
_OPTIONS = {"verbose": False}

_STATE_MESSAGES = {
    SessionState.BRIDGE_STARTING: "Starting file bridge...",
    SessionState.AWAITING_RESPONSE: "Request sent, waiting for the app...",
}


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} vbookbridge v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Debug logging on stderr"),
):
    """vbookbridge - test and install vbook extensions on a device."""
    _OPTIONS["verbose"] = verbose


register_config_commands(app, console)


def _load_config() -> Config:
    try:
        return get_config()
    except ValueError as e:
        console.print(Text(str(e), style="red"))
        raise typer.Exit(1)


def _make_store(config: Config) -> JsonFileSessionStore:
    return JsonFileSessionStore(config.session.dirname, config.session.filename)


def _print_error(error: VbookBridgeError) -> None:
    console.print(Text.assemble(("✗ ", "red"), sanitize_error_message(str(error))))


def _interactive(no_prompt: bool) -> bool:
    return not no_prompt and sys.stdin.isatty()


def _ask_missing(
    script: Path,
    store: JsonFileSessionStore,
    config: Config,
    app_url: str | None,
    input_text: str | None,
) -> tuple[str | None, str | None]:
    """Prompt for an address nobody gave us and for the input, defaulting to the last one."""
    from vbookbridge.cli.shared.prompt_utils import prompt_address, prompt_input
    from vbookbridge.project.validator import find_project_root

    try:
        root = find_project_root(script)
    except ConfigurationError:
        return app_url, input_text
    session = store.load(root)
    try:
        if not app_url and not session.target_url:
            app_url = prompt_address(default_port=config.address.default_port)
        if input_text is None:
            input_text = prompt_input(session.inputs.get(script.name, ""))
    except (KeyboardInterrupt, EOFError):
        console.print("[yellow]Cancelled[/yellow]")
        raise typer.Exit(1)
    return app_url, input_text


def _print_report(report: RunReport) -> None:
    """Render a finished run: target line, then log/result/exception or the failure."""
    if report.target is not None:
        console.print(f"[dim]Target:[/dim] {report.target.url}  [dim]Callback:[/dim] {report.callback_url}")

    if report.aborted:
        console.print(Text.assemble(("✗ Aborted ", "red"), sanitize_error_message(str(report.error))))
        return

    if isinstance(report.error, ProtocolError):
        message = sanitize_error_message(report.error.message)
        console.print(Text.assemble(("✗ Could not decode the response: ", "red"), message))
        console.rule("Raw response")
        console.print(Text(report.raw_response or report.error.raw))
        return

    response = report.response
    if response is None:
        return
    if response.log:
        console.rule("Log")
        console.print(Text(response.log))
    if response.ok:
        console.rule("Result")
        result = response.parsed_result()
        if isinstance(result, (dict, list)):
            console.print_json(json.dumps(result, ensure_ascii=False))
        else:
            console.print(Text("" if result is None else str(result)))
        console.print("[green]✓[/green] Script finished")
    else:
        console.rule("Exception", style="red")
        console.print(Text(response.exception or ""))
        console.print(f"[red]✗[/red] Script failed (status {response.status})")


# ============================================================================
# Test / Install
# ============================================================================


@app.command()
def test(
    script: Path = typer.Argument(..., help="Extension script to run, inside a project holding plugin.json"),
    app_url: str = typer.Option(None, "--app-url", "-u", help="vbook app address, e.g. http://192.168.1.100:8080"),
    input_text: str = typer.Option(None, "--input", "-i", help="Script input; comma separated for multiple parameters"),
    no_prompt: bool = typer.Option(False, "--no-prompt", help="Never prompt; use stored address and last input"),
):
    """Run one extension script on the vbook app and show its result."""
    configure_logging("test", _OPTIONS["verbose"])
    config = _load_config()
    store = _make_store(config)
    script = script.expanduser().resolve()
    if _interactive(no_prompt):
        app_url, input_text = _ask_missing(script, store, config, app_url, input_text)

    def on_state(state: SessionState) -> None:
        message = _STATE_MESSAGES.get(state)
        if message:
            console.print(f"[dim]{message}[/dim]")

    orchestrator = SessionOrchestrator(config, store, on_state=on_state)
    report = asyncio.run(orchestrator.run_test(script, address=app_url, raw_input=input_text))
    _print_report(report)
    if not report.ok:
        raise typer.Exit(1)


@app.command()
def install(
    project: Path = typer.Argument(Path("."), help="Project directory (holds plugin.json)"),
    app_url: str = typer.Option(None, "--app-url", "-u", help="vbook app address; defaults to the stored one"),
):
    """Install the extension on the vbook app in debug mode."""
    configure_logging("install", _OPTIONS["verbose"])
    config = _load_config()
    orchestrator = SessionOrchestrator(config, _make_store(config))
    try:
        result = asyncio.run(orchestrator.run_install(project, address=app_url))
    except VbookBridgeError as e:
        _print_error(e)
        raise typer.Exit(1)
    console.print(f"[green]✓[/green] Extension installed (HTTP {result['http_status']})")


# ============================================================================
# Project
# ============================================================================


@app.command()
def build(
    project: Path = typer.Argument(Path("."), help="Project directory (holds plugin.json)"),
    output: Path = typer.Option(None, "--output", "-o", help="Archive path (default: <project>/plugin.zip)"),
):
    """Validate the project and package it into plugin.zip."""
    from vbookbridge.project.builder import build_extension

    configure_logging("build", _OPTIONS["verbose"])
    try:
        out = build_extension(project, output)
    except VbookBridgeError as e:
        _print_error(e)
        raise typer.Exit(1)
    console.print(f"[green]✓[/green] plugin.zip created: {out}")


@app.command()
def validate(
    project: Path = typer.Argument(Path("."), help="Project directory (holds plugin.json)"),
):
    """Check plugin.json, icon.png and src/*.js."""
    from vbookbridge.project.validator import SRC_DIRNAME, list_scripts, validate_project

    configure_logging("validate", _OPTIONS["verbose"])
    try:
        descriptor = validate_project(project)
    except VbookBridgeError as e:
        _print_error(e)
        raise typer.Exit(1)
    meta = descriptor.metadata
    scripts = [p.name for p in list_scripts(Path(project) / SRC_DIRNAME)]
    console.print(f"[green]✓[/green] {meta.name} v{meta.version} by {meta.author} ({meta.source})")
    console.print(f"  Scripts: {', '.join(scripts)}")


# ============================================================================
# Network
# ============================================================================


@app.command()
def interfaces(
    app_url: str = typer.Option(None, "--app-url", "-u", help="Score against this vbook app address"),
):
    """List local IPv4 interfaces and how they score as callback address."""
    from vbookbridge.network.address import TargetAddress, parse_target_address
    from vbookbridge.network.interfaces import enumerate_ipv4_addresses, pick_best, score_candidates

    configure_logging("interfaces", _OPTIONS["verbose"])
    config = _load_config()
    try:
        if app_url:
            target = parse_target_address(app_url, default_port=config.address.default_port)
        else:
            target = TargetAddress("http", "localhost", config.address.default_port)
        bridge_port = target.bridge_port(config.address.bridge_port_offset)
    except VbookBridgeError as e:
        _print_error(e)
        raise typer.Exit(1)

    resolver = config.resolver
    scored = score_candidates(
        target,
        enumerate_ipv4_addresses(resolver.skip_interface_patterns),
        prefix_octets=resolver.prefix_octets,
        private_weight=resolver.private_weight,
        prefix_weight=resolver.prefix_weight,
    )
    if not scored:
        console.print("[yellow]No suitable network interface found.[/yellow]")
        raise typer.Exit(1)

    best = pick_best(scored)

    table = Table(title=f"Callback candidates for {target.url}")
    table.add_column("Interface", style="cyan")
    table.add_column("IP")
    table.add_column("Private")
    table.add_column("Prefix match")
    table.add_column("Score", justify="right")
    table.add_column("Selected")
    for row in scored:
        table.add_row(
            row.interface,
            row.ip,
            "yes" if row.is_private else "no",
            "yes" if row.prefix_match else "no",
            str(row.score),
            "✓" if row is best else "",
        )
    console.print(table)

    status = bridge_port_status(config.bridge.bind_host, bridge_port)
    color = "green" if status == "free" else "red"
    console.print(Text.assemble(f"File bridge port {bridge_port}: ", (status, color)))


if __name__ == "__main__":
    app()
