"""vbookbridge - test, build and install vbook extension scripts against a running vbook app."""

__version__ = "0.1.0"
__logo__ = "📚"
