"""
Sending contract transactions and waiting for them to be mined.

With a private key the transaction is built, signed locally and sent raw.
Without one, the node's first unlocked account sends it (local dev chains).
"""

import logging
from typing import Any, Dict, Optional

from web3 import Web3

from .errors import TransactionFailed

logger = logging.getLogger(__name__)


class TransactionSender:
    def __init__(self, w3: Web3, private_key: Optional[str] = None,
                 chain_id: Optional[int] = None, gas: Optional[int] = None,
                 timeout: int = 120):
        self.w3 = w3
        self.private_key = private_key
        self.chain_id = chain_id
        self.gas = gas
        self.timeout = timeout
        self.account = w3.eth.account.from_key(private_key) if private_key else None

    @property
    def address(self) -> str:
        if self.account is not None:
            return self.account.address
        if self.w3.eth.default_account:
            return self.w3.eth.default_account
        return self.w3.eth.accounts[0]

    def _tx_params(self) -> Dict[str, Any]:
        params: Dict[str, Any] = {'from': self.address}
        if self.gas is not None:
            params['gas'] = self.gas
        return params

    def send(self, call, description: str = "transaction"):
        """
        Send a prepared contract call or constructor and wait for the receipt.

        Args:
            call: A ContractFunction or ContractConstructor
            description: Used in log lines

        Returns:
            The transaction receipt

        Raises:
            TransactionFailed: The transaction was mined with status 0
        """
        params = self._tx_params()

        if self.account is not None:
            params.update({
                'nonce': self.w3.eth.get_transaction_count(self.account.address),
                'gasPrice': self.w3.eth.gas_price,
            })
            if self.chain_id is not None:
                params['chainId'] = self.chain_id
            tx = call.build_transaction(params)
            signed_tx = self.w3.eth.account.sign_transaction(tx, self.private_key)
            tx_hash = self.w3.eth.send_raw_transaction(signed_tx.raw_transaction)
        else:
            tx_hash = call.transact(params)

        logger.info(f"Sent {description} from {params['from']}: {Web3.to_hex(tx_hash)}")
        receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.timeout)

        if receipt['status'] != 1:
            logger.error(f"{description} failed: {Web3.to_hex(tx_hash)}")
            raise TransactionFailed(Web3.to_hex(tx_hash), receipt)

        logger.info(f"{description} confirmed in block {receipt['blockNumber']}")
        return receipt
