"""
Network configuration primitives.

A NetworkConfig carries everything the experiment needs to know about a
chain: its EIP-155 chain id, the USDC contract that verifies ERC-3009
authorizations, and the EIP-712 domain that USDC instance was deployed with.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class NetworkConfig:
    """Configuration for one EVM chain."""

    name: str
    display_name: str
    chain_id: int
    usdc_address: str
    usdc_decimals: int
    usdc_domain_name: str
    usdc_domain_version: str
    rpc_url: str
    # OP-stack chains report an L1 data fee on every receipt
    reports_l1_fee: bool = False


_NETWORKS: dict[str, NetworkConfig] = {}


def register_network(network: NetworkConfig) -> None:
    """Add a network to the registry, replacing any entry with the same name."""
    _NETWORKS[network.name.lower()] = network


def get_network(name: str) -> Optional[NetworkConfig]:
    """Look up a registered network by name (case-insensitive)."""
    return _NETWORKS.get(name.lower())


def get_network_by_chain_id(chain_id: int) -> Optional[NetworkConfig]:
    """Look up a registered network by its chain id."""
    for network in _NETWORKS.values():
        if network.chain_id == chain_id:
            return network
    return None


def list_networks() -> list[NetworkConfig]:
    """Return registered networks, sorted by name."""
    return sorted(_NETWORKS.values(), key=lambda n: n.name)
