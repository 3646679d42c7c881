"""Exceptions raised by the GreenWorld offchain tooling."""


class GreenWorldError(Exception):
    """Base class for all tooling errors"""


class ConfigurationError(GreenWorldError):
    """A setting is missing or malformed"""


class ArtifactError(GreenWorldError):
    """A compiled contract artifact could not be loaded"""


class LinkError(GreenWorldError):
    """Library linking failed or left placeholders behind"""


class DeploymentError(GreenWorldError):
    """A deployment step was attempted out of order"""


class NodeConnectionError(GreenWorldError):
    """The RPC node could not be reached"""


class TransactionFailed(GreenWorldError):
    """A mined transaction reported a failed status"""

    def __init__(self, tx_hash: str, receipt=None):
        super().__init__(f"Transaction {tx_hash} failed")
        self.tx_hash = tx_hash
        self.receipt = receipt
