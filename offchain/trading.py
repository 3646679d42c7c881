#!/usr/bin/env python3
"""
Turn trading on (or off) on the deployed GREENTEST token.

Sends a single setTradingIsEnabled(bool) transaction from the configured
account and waits for it to be mined.
"""

import sys
import logging
import argparse

from .artifacts import ArtifactStore
from .client import connect
from .config import Settings, setup_logging
from .errors import ConfigurationError, GreenWorldError
from .transactions import TransactionSender

logger = logging.getLogger(__name__)

TOKEN_ARTIFACT = "GREENTEST"


def attach_contract(w3, address: str, abi):
    """Contract instance for an already deployed `address`."""
    if not w3.is_address(address):
        raise ConfigurationError(f"Invalid contract address: {address}")
    return w3.eth.contract(address=w3.to_checksum_address(address), abi=abi)


def set_trading_is_enabled(contract, sender: TransactionSender, enabled: bool = True):
    logger.info(f"Calling setTradingIsEnabled({enabled}) on {contract.address}")
    return sender.send(contract.functions.setTradingIsEnabled(enabled), "setTradingIsEnabled")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Enable or disable trading on the GREENTEST token")
    parser.add_argument("--disable", action="store_true", help="Disable trading instead of enabling it")
    parser.add_argument("--address", help="Token address (default: CONTRACT_ADDRESS)")
    parser.add_argument("--rpc-url", help="RPC endpoint (default: RPC_URL)")
    parser.add_argument("--artifact", default=TOKEN_ARTIFACT, help="Artifact providing the ABI")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    try:
        settings = Settings.from_env().override(rpc_url=args.rpc_url, contract_address=args.address)
    except GreenWorldError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    setup_logging(settings.log_file)

    try:
        address = settings.require_contract_address()
        abi = ArtifactStore(settings.artifacts_dir).require(args.artifact).abi

        w3 = connect(settings.rpc_url)
        contract = attach_contract(w3, address, abi)
        chain_id = settings.resolve_chain_id(w3.eth.chain_id)
        sender = TransactionSender(w3, settings.private_key, chain_id,
                                   settings.gas_limit, settings.tx_timeout)

        receipt = set_trading_is_enabled(contract, sender, not args.disable)
    except Exception as e:
        logger.error(f"setTradingIsEnabled failed: {e}")
        return 1

    logger.info(f"Trading {'disabled' if args.disable else 'enabled'} in block {receipt['blockNumber']}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
