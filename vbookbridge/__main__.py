"""Entry point for ``python -m vbookbridge``."""

from vbookbridge.cli.commands import app

if __name__ == "__main__":
    app()
