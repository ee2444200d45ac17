"""Extension project discovery and validation.

A project looks like::

    <project>/plugin.json   descriptor with "metadata" and "script" sections
    <project>/icon.png
    <project>/src/*.js
"""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError

from vbookbridge.utils.exceptions import ConfigurationError

DESCRIPTOR_FILENAME = "plugin.json"
ICON_FILENAME = "icon.png"
SRC_DIRNAME = "src"


class PluginMetadata(BaseModel):
    """``metadata`` section of plugin.json."""
    model_config = ConfigDict(extra="allow")

    name: str = ""
    author: str = ""
    version: int = 0
    source: str = ""
    regexp: str = ""
    description: str = ""
    locale: str = ""
    tag: str = ""
    type: str = ""


class PluginScripts(BaseModel):
    """``script`` section of plugin.json: entry script per vbook feature."""
    model_config = ConfigDict(extra="allow")

    home: str = ""
    genre: str = ""
    detail: str = ""
    search: str = ""
    page: str = ""
    toc: str = ""
    chap: str = ""


class PluginDescriptor(BaseModel):
    metadata: PluginMetadata
    script: PluginScripts = Field(default_factory=PluginScripts)


def find_project_root(script_path: Path) -> Path:
    """Nearest ancestor of script_path that holds plugin.json."""
    current = Path(script_path).resolve().parent
    while True:
        if (current / DESCRIPTOR_FILENAME).is_file():
            return current
        if current.parent == current:
            break
        current = current.parent
    raise ConfigurationError(
        f"{DESCRIPTOR_FILENAME} not found in script path or parent directories",
        path=str(script_path),
    )


def read_descriptor(project_root: Path) -> PluginDescriptor:
    """Parse plugin.json; both sections must be present."""
    path = Path(project_root) / DESCRIPTOR_FILENAME
    _require_file(path, DESCRIPTOR_FILENAME)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"{DESCRIPTOR_FILENAME} is not valid JSON: {e}", path=str(path)) from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"{DESCRIPTOR_FILENAME} must be a JSON object", path=str(path))
    for section in ("metadata", "script"):
        if section not in data:
            raise ConfigurationError(f"{DESCRIPTOR_FILENAME} missing required '{section}' section", path=str(path))
    try:
        return PluginDescriptor.model_validate(data)
    except PydanticValidationError as e:
        raise ConfigurationError(f"invalid {DESCRIPTOR_FILENAME}: {e}", path=str(path)) from e


def validate_for_testing(project_root: Path) -> PluginDescriptor:
    """Testing only needs a readable descriptor."""
    root = _require_dir(Path(project_root), "project")
    return read_descriptor(root)


def validate_project(project_root: Path) -> PluginDescriptor:
    """Full validation used by build and install: descriptor, icon and src/*.js."""
    root = _require_dir(Path(project_root), "project")
    descriptor = read_descriptor(root)
    meta = descriptor.metadata
    for field_name in ("name", "author", "source"):
        if not getattr(meta, field_name):
            raise ConfigurationError(f"metadata.{field_name} is required", path=str(root / DESCRIPTOR_FILENAME))
    if meta.version <= 0:
        raise ConfigurationError("metadata.version must be greater than 0", path=str(root / DESCRIPTOR_FILENAME))
    _require_file(root / ICON_FILENAME, ICON_FILENAME)
    src = _require_dir(root / SRC_DIRNAME, SRC_DIRNAME)
    if not list_scripts(src):
        raise ConfigurationError("src directory must contain at least one JavaScript (.js) file", path=str(src))
    return descriptor


def list_scripts(src_dir: Path) -> list[Path]:
    """Top-level .js files of src, sorted by name."""
    if not src_dir.is_dir():
        return []
    return sorted(p for p in src_dir.iterdir() if p.is_file() and p.suffix == ".js")


def _require_file(path: Path, name: str) -> Path:
    if not path.exists():
        raise ConfigurationError(f"required file '{name}' not found", path=str(path))
    if path.is_dir():
        raise ConfigurationError(f"'{name}' should be a file, not a directory", path=str(path))
    return path


def _require_dir(path: Path, name: str) -> Path:
    if not path.exists():
        raise ConfigurationError(f"required directory '{name}' not found", path=str(path))
    if not path.is_dir():
        raise ConfigurationError(f"'{name}' should be a directory, not a file", path=str(path))
    return path
