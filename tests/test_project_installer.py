import base64
import json

import httpx
import pytest

from vbookbridge.bridge.protocol import decode_data_header
from vbookbridge.network.address import parse_target_address
from vbookbridge.project import installer
from vbookbridge.project.installer import prepare_plugin_data, send_install
from vbookbridge.utils.exceptions import ConfigurationError, InstallError, TransportError


def _patch_transport(monkeypatch, handler):
    real_client = httpx.AsyncClient

    def factory(*args, **kwargs):
        kwargs["transport"] = httpx.MockTransport(handler)
        kwargs["trust_env"] = False
        return real_client(*args, **kwargs)

    monkeypatch.setattr(installer.httpx, "AsyncClient", factory)


def test_prepare_plugin_data(project_dir):
    data = prepare_plugin_data(project_dir)

    assert data["id"] == "debug-https://demo.example.com"
    assert data["name"] == "Demo"
    assert data["version"] == "2"
    assert data["enabled"] is True and data["debug"] is True
    assert data["toc"] == "toc.js"
    assert data["icon"] == "data:image/*;base64," + base64.b64encode((project_dir / "icon.png").read_bytes()).decode("ascii")
    scripts = json.loads(data["data"])
    assert sorted(scripts) == ["detail.js", "toc.js"]
    assert scripts["toc.js"] == (project_dir / "src" / "toc.js").read_text(encoding="utf-8")


def test_prepare_plugin_data_validates_first(project_dir):
    (project_dir / "icon.png").unlink()
    with pytest.raises(ConfigurationError):
        prepare_plugin_data(project_dir)


@pytest.mark.asyncio
async def test_send_install_puts_payload_in_data_header(monkeypatch):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["payload"] = decode_data_header(request.headers["data"])
        return httpx.Response(200, json={"status": 0})

    _patch_transport(monkeypatch, handler)
    result = await send_install(parse_target_address("192.168.1.100"), {"id": "debug-x", "name": "Demo"})

    assert seen["url"] == "http://192.168.1.100:8080/install"
    assert seen["payload"] == {"id": "debug-x", "name": "Demo"}
    assert result == {"http_status": 200, "body": {"status": 0}}


@pytest.mark.asyncio
async def test_send_install_non_json_reply_is_returned_as_text(monkeypatch):
    _patch_transport(monkeypatch, lambda request: httpx.Response(200, text="installed"))
    result = await send_install(parse_target_address("192.168.1.100"), {"id": "debug-x"})
    assert result == {"http_status": 200, "body": "installed"}


@pytest.mark.asyncio
async def test_send_install_rejected_status_raises(monkeypatch):
    _patch_transport(monkeypatch, lambda request: httpx.Response(200, json={"status": 2, "message": "bad"}))
    with pytest.raises(InstallError) as exc_info:
        await send_install(parse_target_address("192.168.1.100"), {"id": "debug-x"})
    assert exc_info.value.details["status"] == 2


@pytest.mark.asyncio
async def test_send_install_connection_failure(monkeypatch):
    def handler(request):
        raise httpx.ConnectError("Connection refused", request=request)

    _patch_transport(monkeypatch, handler)
    with pytest.raises(TransportError):
        await send_install(parse_target_address("192.168.1.100"), {"id": "debug-x"})
