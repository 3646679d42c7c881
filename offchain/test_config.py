#!/usr/bin/env python3
"""
Tests for Settings and client construction
"""

import os
import re

import pytest
from unittest.mock import patch

from web3 import Web3

from offchain.client import connect, make_provider
from offchain.config import DEFAULT_RPC_URL, Settings
from offchain.errors import ConfigurationError, NodeConnectionError

ENV_KEYS = ("RPC_URL", "CHAIN_ID", "CONTRACT_ADDRESS", "PRIVATE_KEY", "ARTIFACTS_DIR",
            "MIGRATIONS_DIR", "DEPLOYMENT_FILE", "GAS_LIMIT", "TX_TIMEOUT", "LOG_FILE")

PYPROJECT = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "pyproject.toml")


@pytest.fixture
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    with patch("offchain.config.load_dotenv"):
        yield monkeypatch


class TestSettings:
    """Test reading settings from the environment"""

    def test_defaults(self, clean_env):
        """Test the defaults when nothing is configured"""
        settings = Settings.from_env()
        assert settings.rpc_url == DEFAULT_RPC_URL
        assert settings.chain_id is None
        assert settings.contract_address is None
        assert settings.private_key is None
        assert settings.artifacts_dir == "build/contracts"
        assert settings.gas_limit is None
        assert settings.tx_timeout == 120

    def test_environment_values(self, clean_env):
        """Test environment values are read and converted"""
        clean_env.setenv("RPC_URL", "http://localhost:8545")
        clean_env.setenv("CHAIN_ID", "1337")
        clean_env.setenv("CONTRACT_ADDRESS", "0x" + "cd" * 20)
        clean_env.setenv("GAS_LIMIT", "0x2dc6c0")

        settings = Settings.from_env()
        assert settings.rpc_url == "http://localhost:8545"
        assert settings.chain_id == 1337
        assert settings.contract_address == "0x" + "cd" * 20
        assert settings.gas_limit == 3000000

    def test_invalid_integer(self, clean_env):
        """Test a non-numeric CHAIN_ID raises ConfigurationError"""
        clean_env.setenv("CHAIN_ID", "bsc")
        with pytest.raises(ConfigurationError, match="CHAIN_ID"):
            Settings.from_env()

    def test_blank_values_use_defaults(self, clean_env):
        """Test whitespace-only values fall back to defaults"""
        clean_env.setenv("RPC_URL", "  ")
        assert Settings.from_env().rpc_url == DEFAULT_RPC_URL

    def test_override_ignores_none(self):
        """Test override only applies values that were given"""
        settings = Settings(rpc_url="http://a").override(rpc_url=None, contract_address="0x1")
        assert settings.rpc_url == "http://a"
        assert settings.contract_address == "0x1"

    def test_require_contract_address(self):
        """Test a missing contract address raises ConfigurationError"""
        with pytest.raises(ConfigurationError):
            Settings().require_contract_address()
        assert Settings(contract_address="0x1").require_contract_address() == "0x1"

    def test_resolve_chain_id_uses_node_when_unset(self):
        """Test the node's chain id is used when CHAIN_ID is not set"""
        assert Settings().resolve_chain_id(1337) == 1337

    def test_resolve_chain_id_accepts_matching_value(self):
        """Test a CHAIN_ID equal to the node's is accepted"""
        assert Settings(chain_id=97).resolve_chain_id(97) == 97

    def test_resolve_chain_id_rejects_mismatch(self):
        """Test a CHAIN_ID different from the node's raises ConfigurationError"""
        with pytest.raises(ConfigurationError, match="1337"):
            Settings(chain_id=97).resolve_chain_id(1337)


class TestClient:
    """Test provider selection and connection checks"""

    def test_http_provider(self):
        """Test http(s) URLs get an HTTPProvider"""
        assert isinstance(make_provider("https://data-seed-prebsc-1-s1.binance.org:8545/"), Web3.HTTPProvider)

    def test_websocket_provider(self):
        """Test ws(s) URLs get the synchronous websocket provider"""
        with patch("offchain.client.LegacyWebSocketProvider") as mock_ws:
            assert make_provider("wss://bsc-testnet.example/ws") is mock_ws.return_value
        mock_ws.assert_called_once_with("wss://bsc-testnet.example/ws")

    def test_web3_range_keeps_sync_websocket_provider(self):
        """Test the web3 requirement stops before 8, which drops LegacyWebSocketProvider"""
        with open(PYPROJECT) as f:
            text = f.read()
        requirement = re.search(r'"web3([^"]*)"', text).group(1)
        upper = re.search(r"<\s*(\d+)", requirement)
        assert upper is not None
        assert int(upper.group(1)) <= 8

    def test_unsupported_scheme(self):
        """Test other URL schemes raise ConfigurationError"""
        with pytest.raises(ConfigurationError):
            make_provider("ftp://node")

    def test_unreachable_node(self):
        """Test a node that does not answer raises NodeConnectionError"""
        with patch.object(Web3, "is_connected", return_value=False):
            with pytest.raises(NodeConnectionError):
                connect("http://localhost:8545")

    def test_connect_without_check(self):
        """Test check=False skips the connectivity check"""
        with patch.object(Web3, "is_connected") as mock_connected:
            w3 = connect("http://localhost:8545", check=False)
        assert isinstance(w3, Web3)
        mock_connected.assert_not_called()
