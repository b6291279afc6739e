"""Blockchain collaborator: key generation and account history."""

from momo.chain.base import (
    ChainClient,
    ChainEvent,
    ChainTransaction,
    KeyPair,
    SimulatedChainClient,
    key_pair_from_private_key,
)
from momo.chain.factory import get_chain_client

__all__ = [
    "ChainClient",
    "ChainEvent",
    "ChainTransaction",
    "KeyPair",
    "SimulatedChainClient",
    "get_chain_client",
    "key_pair_from_private_key",
]
