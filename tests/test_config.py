"""
xbridge Configuration Test Suite

Tests for TOML loading, environment overrides and validation.

Run with:
    pytest tests/test_config.py -v
"""

from pathlib import Path

import pytest

from xbridge.config import BridgeConfig, LedgerConfig, MonitorConfig, load_config
from xbridge.config.loader import tomli
from xbridge.constants import COSMOS_PAGE_SIZE, EVM_BLOCK_WINDOW, REQUEST_TIMEOUT
from xbridge.exceptions import ConfigurationError

SAMPLE_TOML = """
[engine]
request_timeout = 4.5
log_level = "debug"

[monitor]
evm_block_window = 500
cosmos_page_size = 25

[[ledgers]]
key = "bsc"
name = "BNB Smart Chain"
family = "evm"
chain_id = "0x00000038"
bridge_address = "0x1111111111111111111111111111111111111111"
endpoints = ["https://rpc-1.example", "https://rpc-2.example"]

[[ledgers]]
key = "terra"
family = "cosmos"
bridge_address = "terra1x46rqay4d3cssq8gxxvqz8xt6nwlz4td20k38v"
endpoints = "https://lcd-1.example, https://lcd-2.example"
native_denoms = ["uluna", "uusd"]

[[ledgers]]
key = "old"
family = "evm"
enabled = false
"""


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "xbridge.toml"
    path.write_text(SAMPLE_TOML)
    return path


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "XBRIDGE_CONFIG", "XBRIDGE_REQUEST_TIMEOUT", "XBRIDGE_LOG_LEVEL",
        "XBRIDGE_EVM_BLOCK_WINDOW", "XBRIDGE_COSMOS_MAX_NONCE",
    ):
        monkeypatch.delenv(name, raising=False)


class TestLoadFromFile:

    def test_sections_parsed(self, config_file):
        cfg = BridgeConfig.from_file(str(config_file))
        assert cfg.engine.request_timeout == 4.5
        assert cfg.engine.log_level == "DEBUG"
        assert cfg.monitor.evm_block_window == 500
        assert cfg.monitor.cosmos_page_size == 25
        assert cfg.validate()

    def test_ledger_order_preserved(self, config_file):
        cfg = BridgeConfig.from_file(str(config_file))
        assert [ledger.key for ledger in cfg.ledgers] == ["bsc", "terra", "old"]
        assert [ledger.key for ledger in cfg.enabled_ledgers] == ["bsc", "terra"]

    def test_endpoint_list_and_csv(self, config_file):
        cfg = BridgeConfig.from_file(str(config_file))
        assert cfg.get_ledger("bsc").endpoints == ["https://rpc-1.example", "https://rpc-2.example"]
        assert cfg.get_ledger("terra").endpoints == ["https://lcd-1.example", "https://lcd-2.example"]

    def test_ledger_defaults(self, config_file):
        terra = BridgeConfig.from_file(str(config_file)).get_ledger("terra")
        assert terra.hrp == "terra"
        assert terra.chain_id == ""
        assert terra.name == "terra"
        assert terra.native_denoms == ["uluna", "uusd"]

    def test_ledger_serializes_only_used_fields(self, config_file):
        terra = BridgeConfig.from_file(str(config_file)).get_ledger("terra")
        assert set(terra.to_dict()) == {
            "key", "name", "family", "chain_id", "bridge_address",
            "endpoints", "hrp", "native_denoms", "enabled",
        }

    def test_missing_file_gives_defaults(self, tmp_path):
        cfg = BridgeConfig.from_file(str(tmp_path / "absent.toml"))
        assert cfg.engine.request_timeout == REQUEST_TIMEOUT
        assert cfg.monitor.evm_block_window == EVM_BLOCK_WINDOW
        assert cfg.monitor.cosmos_page_size == COSMOS_PAGE_SIZE
        assert cfg.ledgers == []

    def test_invalid_toml(self, tmp_path):
        path = tmp_path / "broken.toml"
        path.write_text("[engine\nrequest_timeout = ")
        with pytest.raises(ConfigurationError):
            BridgeConfig.from_file(str(path))


class TestEnvOverrides:

    def test_env_wins_over_file(self, config_file, monkeypatch):
        monkeypatch.setenv("XBRIDGE_REQUEST_TIMEOUT", "2")
        monkeypatch.setenv("XBRIDGE_EVM_BLOCK_WINDOW", "77")
        monkeypatch.setenv("XBRIDGE_COSMOS_MAX_NONCE", "12")
        monkeypatch.setenv("XBRIDGE_LOG_LEVEL", "warning")
        cfg = BridgeConfig.from_file(str(config_file))
        assert cfg.engine.request_timeout == 2.0
        assert cfg.engine.log_level == "WARNING"
        assert cfg.monitor.evm_block_window == 77
        assert cfg.monitor.cosmos_deposit_max_nonce == 12

    def test_load_config_uses_env_path(self, config_file, monkeypatch):
        monkeypatch.setenv("XBRIDGE_CONFIG", str(config_file))
        assert load_config().get_ledger("bsc") is not None

    def test_explicit_path_wins(self, config_file, tmp_path, monkeypatch):
        monkeypatch.setenv("XBRIDGE_CONFIG", str(tmp_path / "absent.toml"))
        assert len(load_config(str(config_file)).ledgers) == 3


class TestValidation:

    def test_unknown_family(self):
        cfg = BridgeConfig(ledgers=[LedgerConfig(key="x", family="solana")])
        with pytest.raises(ConfigurationError, match="family"):
            cfg.validate()

    def test_bad_chain_id(self):
        cfg = BridgeConfig(ledgers=[LedgerConfig(key="x", family="evm", chain_id="56")])
        with pytest.raises(ConfigurationError, match="chain_id"):
            cfg.validate()

    def test_duplicate_keys(self):
        cfg = BridgeConfig(ledgers=[
            LedgerConfig(key="x", family="evm"),
            LedgerConfig(key="x", family="cosmos"),
        ])
        with pytest.raises(ConfigurationError, match="Duplicate"):
            cfg.validate()

    def test_non_positive_timeout(self):
        cfg = BridgeConfig()
        cfg.engine.request_timeout = 0
        with pytest.raises(ConfigurationError):
            cfg.validate()

    def test_monitor_bounds(self):
        with pytest.raises(ConfigurationError, match="cosmos_page_size"):
            MonitorConfig(cosmos_page_size=0).validate()

    def test_to_dict_round_trip(self, config_file):
        cfg = BridgeConfig.from_file(str(config_file))
        rebuilt = BridgeConfig.from_dict(cfg.to_dict())
        assert rebuilt.to_dict() == cfg.to_dict()


class TestProjectMetadata:

    def test_no_readme_declared(self):
        with open(Path(__file__).resolve().parent.parent / "pyproject.toml", "rb") as f:
            project = tomli.load(f)["project"]
        assert "readme" not in project
        assert project["name"] == "xbridge"
