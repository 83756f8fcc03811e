"""Tests for configuration loading."""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from hotelchain.chain.tx import DeployOptions
from hotelchain.config import DEFAULT_ENDPOINT_URL, DEFAULT_GAS_LIMIT, DeployConfig, load_config
from hotelchain.errors import ConfigError


class TestDefaults:
    def test_local_node_defaults(self) -> None:
        config = load_config()
        assert config.endpoint_url == DEFAULT_ENDPOINT_URL == "http://localhost:8545"
        assert config.gas_limit == DEFAULT_GAS_LIMIT == 4_700_000
        assert config.sender_account is None
        assert config.compiler == "solc"

    def test_unknown_compiler(self) -> None:
        with pytest.raises(ConfigError, match="Unknown compiler"):
            DeployConfig(compiler="truffle")

    def test_non_positive_timeout(self) -> None:
        with pytest.raises(ConfigError):
            DeployConfig(receipt_timeout=0)


class TestSources:
    def test_environment(self) -> None:
        env = {
            "HOTELCHAIN_RPC_URL": "http://127.0.0.1:7545",
            "HOTELCHAIN_SENDER": "0x90f8bf6a479f320ead074411a4b0e7944ea8c9c1",
            "HOTELCHAIN_GAS_LIMIT": "0x47b760",
            "HOTELCHAIN_RECEIPT_TIMEOUT": "30",
        }
        with patch.dict(os.environ, env):
            config = load_config()
        assert config.endpoint_url == "http://127.0.0.1:7545"
        assert config.sender_account == env["HOTELCHAIN_SENDER"]
        assert config.gas_limit == 4_700_000
        assert config.receipt_timeout == 30.0

    def test_dotenv_file(self, tmp_path: Path) -> None:
        env_path = tmp_path / ".env"
        env_path.write_text(
            "HOTELCHAIN_RPC_URL=http://ganache:8545\nHOTELCHAIN_COMPILER=node\nPRIVATE_KEY=abcd\n",
            encoding="utf-8",
        )
        with patch.dict(os.environ, {}):
            config = load_config(env_path)
        assert config.endpoint_url == "http://ganache:8545"
        assert config.compiler == "node"
        assert config.private_key == "0xabcd"

    def test_overrides_win(self) -> None:
        with patch.dict(os.environ, {"HOTELCHAIN_GAS_LIMIT": "100000"}):
            config = load_config(gas_limit=200_000, endpoint_url=None)
        assert config.gas_limit == 200_000
        assert config.endpoint_url == DEFAULT_ENDPOINT_URL

    def test_invalid_number(self) -> None:
        with patch.dict(os.environ, {"HOTELCHAIN_GAS_LIMIT": "lots"}):
            with pytest.raises(ConfigError, match="gas_limit"):
                load_config()

    def test_deployments_path(self) -> None:
        with patch.dict(os.environ, {"HOTELCHAIN_DEPLOYMENTS": "out/deployed.json"}):
            config = load_config()
        assert config.deployments_path == Path("out/deployed.json")


def test_deploy_options_from_config() -> None:
    config = DeployConfig(sender_account="0xabc", gas_limit=123_456, receipt_timeout=5)
    options = DeployOptions.from_config(config, gas=None)
    assert options.sender == "0xabc"
    assert options.gas == 123_456
    assert options.timeout == 5
