"""Interactive prompts (prompt_toolkit) used by the test command."""

from __future__ import annotations

from prompt_toolkit import prompt
from prompt_toolkit.validation import ValidationError as PromptValidationError
from prompt_toolkit.validation import Validator

from vbookbridge.network.address import normalize_address
from vbookbridge.utils.exceptions import ValidationError


class AddressValidator(Validator):
    """Rejects input that does not normalize to an http(s) target address."""

    def __init__(self, default_port: int = 8080):
        self.default_port = default_port

    def validate(self, document) -> None:
        text = document.text
        try:
            normalize_address(text, default_port=self.default_port)
        except ValidationError as e:
            raise PromptValidationError(cursor_position=len(text), message=e.message) from e


def prompt_address(default: str = "", default_port: int = 8080) -> str:
    """Ask for the runtime app address until a valid one is entered; returns it normalized."""
    text = prompt(
        "vbook app address (e.g. http://192.168.1.100:8080): ",
        default=default,
        validator=AddressValidator(default_port),
        validate_while_typing=False,
    )
    return normalize_address(text, default_port=default_port)


def prompt_input(default: str = "") -> str:
    """Ask for the script input; comma-separated values become a parameter list."""
    return prompt("Input (comma separated for multiple parameters): ", default=default)
