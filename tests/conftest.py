"""Pytest hooks and fixtures."""

import json
import os
from pathlib import Path

import pytest

from vbookbridge.config.access import clear_config_cache

# Smallest valid PNG (1x1, transparent).
ICON_BYTES = bytes.fromhex(
    "89504e470d0a1a0a0000000d4948445200000001000000010806000000"
    "1f15c4890000000d49444154789c6360000002000154a24f5d0000000049454e44ae426082"
)


def pytest_configure(config):
    """Register custom markers (also in pyproject.toml)."""
    config.addinivalue_line(
        "markers",
        "requires_lan: needs a real non-loopback IPv4 interface (skipped in CI)",
    )


def pytest_collection_modifyitems(config, items):
    """Skip requires_lan tests when running in CI (no LAN interface guaranteed)."""
    if os.environ.get("CI") != "true":
        return
    skip = pytest.mark.skip(reason="Requires a LAN interface (skipped in CI)")
    for item in items:
        if "requires_lan" in item.keywords:
            item.add_marker(skip)


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Keep config, logs and session files out of the real home directory."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("USERPROFILE", str(home))
    for key in list(os.environ):
        if key.startswith("VBOOKBRIDGE_"):
            monkeypatch.delenv(key, raising=False)
    clear_config_cache()
    yield home
    clear_config_cache()


def _write_project(base: Path, name: str = "demo-ext", scripts: dict[str, str] | None = None) -> Path:
    """Write a complete extension project under base and return its root."""
    root = base / name
    (root / "src").mkdir(parents=True)
    descriptor = {
        "metadata": {
            "name": "Demo",
            "author": "someone",
            "version": 2,
            "source": "https://demo.example.com",
            "regexp": "demo\\.example\\.com/book/\\d+",
            "description": "Demo source",
            "locale": "vi_VN",
            "type": "novel",
        },
        "script": {"detail": "detail.js", "toc": "toc.js"},
    }
    (root / "plugin.json").write_text(json.dumps(descriptor), encoding="utf-8")
    (root / "icon.png").write_bytes(ICON_BYTES)
    scripts = scripts or {
        "detail.js": "function execute(url) { return Response.success({name: url}); }\n",
        "toc.js": "function execute(url) { return Response.success([]); }\n",
    }
    for filename, source in scripts.items():
        (root / "src" / filename).write_text(source, encoding="utf-8")
    return root


@pytest.fixture
def project_factory(tmp_path):
    """Callable writing extension projects under a per-test workspace."""

    def factory(name: str = "demo-ext", scripts: dict[str, str] | None = None) -> Path:
        return _write_project(tmp_path / "workspace", name, scripts)

    return factory


@pytest.fixture
def project_dir(project_factory) -> Path:
    return project_factory()
