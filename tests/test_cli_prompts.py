import socket

import pytest
from prompt_toolkit.document import Document
from prompt_toolkit.validation import ValidationError

from vbookbridge.cli.shared.config_utils import deep_get, deep_set, deep_unset, parse_value, to_disk_key
from vbookbridge.cli.shared.prompt_utils import AddressValidator


def test_address_validator_accepts_and_rejects():
    validator = AddressValidator()
    validator.validate(Document("192.168.1.100"))
    validator.validate(Document("https://vbook.local:8090/"))
    with pytest.raises(ValidationError):
        validator.validate(Document("ftp://x"))
    with pytest.raises(ValidationError):
        validator.validate(Document(""))


def test_to_disk_key_accepts_both_spellings():
    assert to_disk_key("client.response_timeout") == "client.responseTimeout"
    assert to_disk_key("client.responseTimeout") == "client.responseTimeout"


def test_parse_value():
    assert parse_value("null") is None
    assert parse_value("12") == 12
    assert parse_value("True") is True
    assert parse_value('["docker"]') == ["docker"]
    assert parse_value("0.0.0.0") == "0.0.0.0"


def test_deep_helpers():
    data = {}
    deep_set(data, "a.b.c", 1)
    assert deep_get(data, "a.b.c") == 1
    with pytest.raises(KeyError):
        deep_get(data, "a.x")
    assert deep_unset(data, "a.b.c") is True
    assert deep_unset(data, "a.b.c") is False
    assert data == {"a": {"b": {}}}


def test_bridge_port_status():
    from vbookbridge.cli.shared.network_utils import bridge_port_status, is_port_in_use

    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as held:
        held.bind(("127.0.0.1", 0))
        held.listen(1)
        port = held.getsockname()[1]
        assert is_port_in_use("127.0.0.1", port)
        assert bridge_port_status("127.0.0.1", port) == "in use"
    assert bridge_port_status("127.0.0.1", port) == "free"
