import json

import pytest

from vbookbridge.cli.shared.config_utils import save_config_json
from vbookbridge.cli.shared.logging_utils import get_log_dir
from vbookbridge.config import access
from vbookbridge.config.loader import (
    convert_keys,
    convert_to_camel,
    get_config_path,
    get_data_dir,
    load_config,
)
from vbookbridge.config.schema import Config


def test_defaults():
    cfg = Config()
    assert cfg.address.default_port == 8080
    assert cfg.address.bridge_port_offset == 10
    assert cfg.resolver.prefix_octets == 2
    assert (cfg.resolver.private_weight, cfg.resolver.prefix_weight) == (10, 5)
    assert "docker" in cfg.resolver.skip_interface_patterns
    assert cfg.bridge.bind_host == "0.0.0.0"
    assert cfg.client.connect_timeout == 10.0
    assert cfg.client.response_timeout == 60.0
    assert (cfg.session.dirname, cfg.session.filename) == (".vbook", "session.json")


def test_config_path_lives_in_home(isolated_home):
    assert get_config_path() == isolated_home / ".vbookbridge" / "config.json"


def test_logs_live_in_data_dir(isolated_home):
    assert get_log_dir() == isolated_home / ".vbookbridge" / "logs"
    assert get_data_dir().is_dir()


def test_camel_case_dump_loads_back(tmp_path):
    path = tmp_path / "config.json"
    cfg = Config()
    cfg.client.response_timeout = None
    cfg.address.default_port = 9000
    save_config_json(convert_to_camel(cfg.model_dump()), path)

    raw = json.loads(path.read_text(encoding="utf-8"))
    assert raw["client"]["responseTimeout"] is None
    assert raw["address"]["defaultPort"] == 9000
    assert "skipInterfacePatterns" in raw["resolver"]

    loaded = load_config(path)
    assert loaded.client.response_timeout is None
    assert loaded.address.default_port == 9000


def test_load_missing_file_gives_defaults(tmp_path):
    assert load_config(tmp_path / "absent.json").address.default_port == 8080


def test_load_invalid_json_raises_value_error(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{oops", encoding="utf-8")
    with pytest.raises(ValueError, match="Failed to load config"):
        load_config(path)


def test_env_overrides_nested_values(monkeypatch):
    monkeypatch.setenv("VBOOKBRIDGE_CLIENT__CONNECT_TIMEOUT", "3")
    monkeypatch.setenv("VBOOKBRIDGE_BRIDGE__BIND_HOST", "127.0.0.1")
    cfg = Config()
    assert cfg.client.connect_timeout == 3.0
    assert cfg.bridge.bind_host == "127.0.0.1"


def test_key_conversion():
    assert convert_keys({"bridgePortOffset": 1, "nested": [{"chunkSize": 2}]}) == {
        "bridge_port_offset": 1,
        "nested": [{"chunk_size": 2}],
    }
    assert convert_to_camel({"install_timeout": 1}) == {"installTimeout": 1}


def test_get_config_uses_cache_and_force_reload(monkeypatch):
    calls = {"n": 0}

    def _fake_load_config(_path=None):
        calls["n"] += 1
        cfg = Config()
        cfg.address.default_port = 9000 + calls["n"]
        return cfg

    monkeypatch.setattr(access, "load_config", _fake_load_config)
    access.clear_config_cache()

    first = access.get_config()
    second = access.get_config()
    third = access.get_config(force_reload=True)

    assert first.address.default_port == second.address.default_port
    assert third.address.default_port != second.address.default_port
    assert calls["n"] == 2


def test_clear_config_cache_picks_up_new_file(tmp_path):
    path = tmp_path / "config.json"
    before = access.get_config(config_path=path)
    save_config_json({"client": {"chunkSize": 1024}}, path)
    assert access.get_config(config_path=path).client.chunk_size == 4096
    access.clear_config_cache(config_path=path)
    after = access.get_config(config_path=path)
    assert before.client.chunk_size == 4096
    assert after.client.chunk_size == 1024
