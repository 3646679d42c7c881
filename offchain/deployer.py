"""
Contract deployment for migration scripts.

A migration receives a Deployer and an ArtifactStore:

    def migrate(deployer, artifacts):
        library = artifacts.require("IterableMapping")
        deployer.deploy(library)
        ...

Every step runs synchronously; an exception stops the migration.
"""

import os
import json
import logging
from collections import OrderedDict
from typing import Any, Dict, Optional

from web3 import Web3

from .artifacts import ContractArtifact
from .errors import DeploymentError
from .transactions import TransactionSender

logger = logging.getLogger(__name__)


class DeploymentRecord:
    """Addresses and migration progress persisted in deployment.json"""

    def __init__(self, path: Optional[str], network: Optional[int] = None):
        self.path = path
        self.network = network
        self.last_completed_migration = 0
        self.contracts: Dict[str, Dict[str, Any]] = {}

    @classmethod
    def load(cls, path: Optional[str], network: Optional[int] = None) -> "DeploymentRecord":
        record = cls(path, network)
        if not path or not os.path.exists(path):
            return record

        with open(path, 'r') as f:
            data = json.load(f)

        if network is not None and data.get('network') not in (None, network):
            # Different chain, start over rather than reuse foreign addresses
            logger.warning(f"{path} belongs to network {data.get('network')}, ignoring it for network {network}")
            return record

        record.last_completed_migration = data.get('lastCompletedMigration', 0)
        record.contracts = data.get('contracts', {})
        return record

    def save(self):
        if not self.path:
            return
        data = {
            'network': self.network,
            'lastCompletedMigration': self.last_completed_migration,
            'contracts': self.contracts,
        }
        with open(self.path, 'w') as f:
            json.dump(data, f, indent=2)

    def set_contract(self, name: str, address: str, tx_hash: str, block_number: int):
        self.contracts[name] = {
            'address': address,
            'transactionHash': tx_hash,
            'blockNumber': block_number,
        }
        self.save()

    def complete_migration(self, number: int):
        self.last_completed_migration = number
        self.save()

    def reset(self):
        self.last_completed_migration = 0
        self.contracts = {}
        self.save()


class Deployer:
    def __init__(self, w3, sender: TransactionSender, record: Optional[DeploymentRecord] = None):
        self.w3 = w3
        self.sender = sender
        self.record = record if record is not None else DeploymentRecord(None)
        self.deployments: "OrderedDict[str, str]" = OrderedDict()

    def deploy(self, artifact: ContractArtifact, *args, **kwargs) -> str:
        """
        Deploy `artifact` with the given constructor arguments.

        Library placeholders must have been resolved with link() first.

        Returns:
            The address of the new contract
        """
        bytecode = artifact.linked_bytecode()
        logger.info(f"Deploying {artifact.name}...")

        contract = self.w3.eth.contract(abi=artifact.abi, bytecode=bytecode)
        receipt = self.sender.send(contract.constructor(*args, **kwargs), f"{artifact.name} deployment")

        address = receipt['contractAddress']
        if not address:
            raise DeploymentError(f"{artifact.name} deployment receipt has no contract address")

        artifact.address = address
        self.deployments[artifact.name] = address
        self.record.set_contract(artifact.name, address, Web3.to_hex(receipt['transactionHash']), receipt['blockNumber'])

        logger.info(f"{artifact.name} deployed at {address}")
        return address

    def link(self, library: ContractArtifact, *targets: ContractArtifact):
        """Bind the deployed `library` address into each target's bytecode."""
        if not library.is_deployed:
            raise DeploymentError(f"Cannot link {library.name}: it has not been deployed")
        if not targets:
            raise DeploymentError(f"No contract given to link {library.name} into")

        for target in targets:
            target.links[library.name] = library.address
            # solc >= 0.5 hash placeholders are keyed by the fully qualified name
            if library.fully_qualified_name:
                target.links[library.fully_qualified_name] = library.address
            logger.info(f"Linked {library.name} ({library.address}) into {target.name}")
