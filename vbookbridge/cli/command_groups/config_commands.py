"""Config command group (get/set/unset/path)."""

from __future__ import annotations

import json
from typing import Any

import typer
from rich.console import Console
from rich.text import Text

from vbookbridge.config.access import clear_config_cache
from vbookbridge.config.loader import convert_keys, convert_to_camel, get_config_path
from vbookbridge.config.schema import Config
from vbookbridge.cli.shared.config_utils import (
    deep_get,
    deep_set,
    deep_unset,
    load_config_json,
    parse_value,
    save_config_json,
    to_disk_key,
)


def register_config_commands(app: typer.Typer, console: Console) -> None:
    """Register the config command group."""
    config_app = typer.Typer(help="Config helpers (get/set/unset/path)")
    app.add_typer(config_app, name="config")

    def _load_raw() -> dict[str, Any]:
        try:
            return load_config_json()
        except ValueError as e:
            console.print(Text(str(e), style="red"))
            raise typer.Exit(1)

    @config_app.command("path")
    def config_path() -> None:
        """Print the config file location."""
        console.print(str(get_config_path()))

    @config_app.command("get")
    def config_get(
        key: str = typer.Argument(..., help="Dotted key path, e.g. client.responseTimeout"),
    ) -> None:
        """Show the effective value (file, env and defaults) of a key."""
        raw = _load_raw()
        try:
            data = convert_to_camel(Config.model_validate(convert_keys(raw)).model_dump())
        except ValueError as e:
            console.print(Text.assemble(("Invalid config file: ", "red"), str(e)))
            raise typer.Exit(1)
        try:
            value = deep_get(data, to_disk_key(key))
        except KeyError:
            console.print(f"[red]Key not found:[/red] {key}")
            raise typer.Exit(1)
        console.print(json.dumps(value, indent=2, ensure_ascii=False))

    @config_app.command("set")
    def config_set(
        key: str = typer.Argument(..., help="Dotted key path"),
        value: str = typer.Argument(..., help="JSON value or plain string"),
    ) -> None:
        data = _load_raw()
        deep_set(data, to_disk_key(key), parse_value(value))
        try:
            Config.model_validate(convert_keys(data))
        except ValueError as e:
            console.print(Text.assemble((f"Invalid value for {key}: ", "red"), str(e)))
            raise typer.Exit(1)
        path = save_config_json(data)
        clear_config_cache(config_path=path)
        console.print(f"[green]✓[/green] Set {key}")

    @config_app.command("unset")
    def config_unset(
        key: str = typer.Argument(..., help="Dotted key path"),
    ) -> None:
        data = _load_raw()
        if not deep_unset(data, to_disk_key(key)):
            console.print(f"[yellow]Key not found:[/yellow] {key}")
            raise typer.Exit(1)
        path = save_config_json(data)
        clear_config_cache(config_path=path)
        console.print(f"[green]✓[/green] Unset {key}")
