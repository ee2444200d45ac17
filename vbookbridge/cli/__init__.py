"""CLI module for vbookbridge."""
