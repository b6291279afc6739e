"""Factory for the chain collaborator.

In dry-run mode the simulated in-memory chain is used; otherwise the
Aptos fullnode for the configured network.
"""

from typing import Optional

from momo.chain.base import ChainClient, SimulatedChainClient
from momo.config import get_settings

_client: Optional[ChainClient] = None


def get_chain_client() -> ChainClient:
    """Get the shared chain client."""
    global _client

    if _client is not None:
        return _client

    settings = get_settings()

    if settings.dry_run:
        _client = SimulatedChainClient()
    else:
        from momo.chain.aptos import AptosClient

        _client = AptosClient(
            node_url=settings.node_url,
            network=settings.aptos_network,
            timeout=settings.aptos_request_timeout,
        )

    return _client


def explorer_txn_url(txn_hash: str, network: Optional[str] = None) -> str:
    """Explorer link for a transaction."""
    settings = get_settings()
    network = network or settings.aptos_network
    return f"{settings.aptos_explorer_url.rstrip('/')}/txn/{txn_hash}?network={network}"


def reset_chain_client() -> None:
    """Drop the cached client (useful for testing)."""
    global _client
    _client = None
