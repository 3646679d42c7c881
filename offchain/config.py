"""
Runtime settings for the GreenWorld scripts.

Values come from the environment (a local .env file is loaded first) and can
be overridden by command line flags at the entry points.
"""

import os
import logging
from dataclasses import dataclass, replace
from typing import Optional

from dotenv import load_dotenv

from .errors import ConfigurationError

DEFAULT_RPC_URL = "https://data-seed-prebsc-1-s1.binance.org:8545/"

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def _get_int_env(key: str, default: Optional[int]) -> Optional[int]:
    val = os.getenv(key, "").strip()
    if not val:
        return default
    try:
        return int(val, 0)
    except ValueError:
        raise ConfigurationError(f"{key} must be an integer, got {val!r}")


def _get_str_env(key: str, default: Optional[str] = None) -> Optional[str]:
    val = os.getenv(key, "").strip()
    return val or default


@dataclass(frozen=True)
class Settings:
    """Settings shared by the migration runner and the call script"""
    rpc_url: str = DEFAULT_RPC_URL
    chain_id: Optional[int] = None
    contract_address: Optional[str] = None
    private_key: Optional[str] = None
    artifacts_dir: str = "build/contracts"
    migrations_dir: str = "migrations"
    deployment_file: str = "deployment.json"
    gas_limit: Optional[int] = None
    tx_timeout: int = 120
    log_file: str = "greenworld.log"

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        return cls(
            rpc_url=_get_str_env("RPC_URL", DEFAULT_RPC_URL),
            chain_id=_get_int_env("CHAIN_ID", None),
            contract_address=_get_str_env("CONTRACT_ADDRESS"),
            private_key=_get_str_env("PRIVATE_KEY"),
            artifacts_dir=_get_str_env("ARTIFACTS_DIR", cls.artifacts_dir),
            migrations_dir=_get_str_env("MIGRATIONS_DIR", cls.migrations_dir),
            deployment_file=_get_str_env("DEPLOYMENT_FILE", cls.deployment_file),
            gas_limit=_get_int_env("GAS_LIMIT", None),
            tx_timeout=_get_int_env("TX_TIMEOUT", cls.tx_timeout),
            log_file=_get_str_env("LOG_FILE", cls.log_file),
        )

    def override(self, **changes) -> "Settings":
        """Return a copy with every non-None value in `changes` applied."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    def require_contract_address(self) -> str:
        if not self.contract_address:
            raise ConfigurationError("CONTRACT_ADDRESS is not set")
        return self.contract_address

    def resolve_chain_id(self, node_chain_id: int) -> int:
        """The chain id reported by the node, checked against CHAIN_ID when set."""
        if self.chain_id is not None and self.chain_id != node_chain_id:
            raise ConfigurationError(
                f"CHAIN_ID is {self.chain_id} but the node at {self.rpc_url} is on chain {node_chain_id}"
            )
        return node_chain_id


def setup_logging(log_file: str, level=logging.INFO):
    """Log to both `log_file` and stderr."""
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler()
        ]
    )
