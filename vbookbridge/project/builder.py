"""Package an extension project into plugin.zip."""

from __future__ import annotations

import zipfile
from pathlib import Path

from loguru import logger

from vbookbridge.project.validator import DESCRIPTOR_FILENAME, ICON_FILENAME, SRC_DIRNAME, validate_project

ARCHIVE_FILENAME = "plugin.zip"


def build_extension(project_root: Path, output_path: Path | None = None) -> Path:
    """Validate the project and write plugin.json, icon.png and src/** into a zip."""
    root = Path(project_root).resolve()
    validate_project(root)
    out = Path(output_path) if output_path else root / ARCHIVE_FILENAME

    with zipfile.ZipFile(out, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9) as zf:
        zf.write(root / DESCRIPTOR_FILENAME, DESCRIPTOR_FILENAME)
        zf.write(root / ICON_FILENAME, ICON_FILENAME)
        for path in sorted((root / SRC_DIRNAME).rglob("*")):
            if path.is_file():
                zf.write(path, path.relative_to(root).as_posix())

    logger.info(f"plugin.zip created: {out} ({out.stat().st_size} bytes)")
    return out
