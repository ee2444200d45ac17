"""Install an extension project on a running vbook app (debug install)."""

from __future__ import annotations

import base64
import json
from pathlib import Path
from typing import Any

import httpx
from loguru import logger

from vbookbridge.bridge.protocol import INSTALL_PATH, encode_data_header
from vbookbridge.network.address import TargetAddress
from vbookbridge.project.validator import ICON_FILENAME, SRC_DIRNAME, list_scripts, validate_project
from vbookbridge.utils.exceptions import InstallError, TransportError


def prepare_plugin_data(project_root: Path) -> dict[str, Any]:
    """Flatten plugin.json, the icon and every src/*.js into the install payload."""
    root = Path(project_root).resolve()
    descriptor = validate_project(root)
    data: dict[str, Any] = {
        **descriptor.metadata.model_dump(),
        **descriptor.script.model_dump(),
    }
    data["version"] = str(descriptor.metadata.version)
    data["id"] = f"debug-{descriptor.metadata.source}"
    icon = (root / ICON_FILENAME).read_bytes()
    data["icon"] = "data:image/*;base64," + base64.b64encode(icon).decode("ascii")
    data["enabled"] = True
    data["debug"] = True
    scripts = {p.name: p.read_text(encoding="utf-8") for p in list_scripts(root / SRC_DIRNAME)}
    data["data"] = json.dumps(scripts, ensure_ascii=False)
    return data


async def send_install(target: TargetAddress, plugin_data: dict[str, Any], *, timeout: float = 30.0) -> dict[str, Any]:
    """GET <target>/install with the payload in the ``data`` header.

    The runtime app's reply is informational: it is logged, and only an explicit
    non-zero JSON ``status`` is treated as a failed install.
    """
    url = f"{target.url}{INSTALL_PATH}"
    headers = {"data": encode_data_header(plugin_data)}
    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            logger.info(f"Connect to: {url}")
            response = await client.get(url, headers=headers)
    except httpx.RequestError as e:
        raise TransportError("install", target.url, str(e) or e.__class__.__name__) from e

    text = response.text
    logger.info(f"Install response: HTTP {response.status_code} ({len(text)} chars)")
    payload: Any = None
    try:
        payload = json.loads(text) if text else None
    except json.JSONDecodeError:
        logger.debug(f"Install response is not JSON: {text[:200]}")
    if isinstance(payload, dict) and "status" in payload:
        status = payload.get("status")
        if status not in (0, "0", None):
            raise InstallError(f"Installation failed with status {status}", status=status)
    return {"http_status": response.status_code, "body": payload if payload is not None else text}
