"""Per-project session state (last target address, last input per script).

State is an explicit ProjectSession passed through the orchestrator; where it lives is
decided by the injected store.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from loguru import logger

from vbookbridge.utils.exceptions import ConfigurationError


@dataclass(slots=True)
class ProjectSession:
    """Remembered operator choices for one project."""

    project_id: str
    target_url: str | None = None
    inputs: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"targetUrl": self.target_url, "inputs": dict(self.inputs)}

    @classmethod
    def from_dict(cls, project_id: str, data: Any) -> "ProjectSession":
        row = data if isinstance(data, dict) else {}
        inputs = row.get("inputs")
        target = row.get("targetUrl")
        return cls(
            project_id=project_id,
            target_url=target if isinstance(target, str) and target else None,
            inputs={str(k): str(v) for k, v in inputs.items()} if isinstance(inputs, dict) else {},
        )


def project_id_for(project_root: Path) -> str:
    return str(Path(project_root).resolve())


@runtime_checkable
class SessionStore(Protocol):
    def load(self, project_root: Path) -> ProjectSession: ...
    def save(self, project_root: Path, session: ProjectSession) -> None: ...


class MemorySessionStore:
    """Process-local store keyed by project identity."""

    def __init__(self) -> None:
        self._rows: dict[str, dict[str, Any]] = {}

    def load(self, project_root: Path) -> ProjectSession:
        pid = project_id_for(project_root)
        return ProjectSession.from_dict(pid, self._rows.get(pid))

    def save(self, project_root: Path, session: ProjectSession) -> None:
        self._rows[project_id_for(project_root)] = session.to_dict()


class JsonFileSessionStore:
    """Reads/writes ``<project>/<dirname>/<filename>`` as JSON."""

    def __init__(self, dirname: str = ".vbook", filename: str = "session.json"):
        self.dirname = dirname
        self.filename = filename

    def path_of(self, project_root: Path) -> Path:
        return Path(project_root) / self.dirname / self.filename

    def load(self, project_root: Path) -> ProjectSession:
        pid = project_id_for(project_root)
        path = self.path_of(project_root)
        if not path.exists():
            return ProjectSession(project_id=pid)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable session file {path}: {e}")
            return ProjectSession(project_id=pid)
        return ProjectSession.from_dict(pid, data)

    def save(self, project_root: Path, session: ProjectSession) -> None:
        path = self.path_of(project_root)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(session.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(f"Failed to write session file: {e}", path=str(path)) from e
