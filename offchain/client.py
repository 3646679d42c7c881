import logging
from urllib.parse import urlparse

from web3 import Web3, LegacyWebSocketProvider
from web3.middleware import ExtraDataToPOAMiddleware

from .errors import ConfigurationError, NodeConnectionError

logger = logging.getLogger(__name__)


def make_provider(rpc_url: str):
    """Pick the provider matching the URL scheme."""
    scheme = urlparse(rpc_url).scheme.lower()
    if scheme in ("http", "https"):
        return Web3.HTTPProvider(rpc_url)
    if scheme in ("ws", "wss"):
        return LegacyWebSocketProvider(rpc_url)
    raise ConfigurationError(f"Unsupported RPC URL scheme: {rpc_url}")


def connect(rpc_url: str, check: bool = True) -> Web3:
    """Initialize a Web3 connection to `rpc_url`"""
    w3 = Web3(make_provider(rpc_url))
    # BSC and other POA chains put extra data in block headers
    w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)

    if check and not w3.is_connected():
        raise NodeConnectionError(f"Could not connect to RPC URL: {rpc_url}")

    logger.info(f"Connected to blockchain at {rpc_url}")
    return w3
