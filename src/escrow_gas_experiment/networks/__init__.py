"""Network registry. Importing this package registers the EVM networks."""

from escrow_gas_experiment.networks.base import (
    NetworkConfig,
    get_network,
    get_network_by_chain_id,
    list_networks,
    register_network,
)
from escrow_gas_experiment.networks.evm import BASE, BASE_SEPOLIA, get_usdc_domain

__all__ = [
    "NetworkConfig",
    "register_network",
    "get_network",
    "get_network_by_chain_id",
    "list_networks",
    "get_usdc_domain",
    "BASE",
    "BASE_SEPOLIA",
]
