"""Extension project helpers: validation, packaging and install."""

from .builder import build_extension
from .installer import prepare_plugin_data, send_install
from .validator import (
    PluginDescriptor,
    find_project_root,
    read_descriptor,
    validate_for_testing,
    validate_project,
)

__all__ = [
    "build_extension",
    "prepare_plugin_data",
    "send_install",
    "PluginDescriptor",
    "find_project_root",
    "read_descriptor",
    "validate_for_testing",
    "validate_project",
]
