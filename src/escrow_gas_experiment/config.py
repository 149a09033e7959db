"""
Experiment configuration.

Defaults reproduce the reference experiment on Base: a 0.01 USDC payment to
a fixed capture address, captured within an hour, authorized for two hours,
with salts 123 and 456 for the two escrow variants.

Wall-clock time only enters through build_inputs(); pass `now` explicitly to
get reproducible digests across runs.
"""

import os
import time
from collections.abc import Mapping, Sequence
from typing import Optional

from pydantic import BaseModel, Field, ValidationError

from escrow_gas_experiment.contracts import get_escrow_contracts
from escrow_gas_experiment.errors import ConfigurationError
from escrow_gas_experiment.models import (
    ZERO_ADDRESS,
    AuthorizationWindow,
    EncodingVariant,
    PaymentDescriptor,
)
from escrow_gas_experiment.networks import NetworkConfig, get_network_by_chain_id
from escrow_gas_experiment.orchestrator import VariantTarget

ENV_PREFIX = "ESCROW_"

# Registry keys of each variant's escrow contract
VARIANT_CONTRACT_KEYS = {
    EncodingVariant.CALLDATA_OPTIMIZED: "calldata_optimized",
    EncodingVariant.GAS_OPTIMIZED: "gas_optimized",
}


class ExperimentConfig(BaseModel):
    """Settings for one experiment run."""

    chain_id: int = 8453
    rpc_url: Optional[str] = None
    private_key: Optional[str] = Field(None, repr=False)
    amount: int = 10_000  # 0.01 USDC (6 decimals)
    capture_address: str = "0x2D893743B2A94Ac1695b5bB38dA965C49cf68450"
    fee_recipient: str = ZERO_ADDRESS
    fee_bps: int = 0
    capture_deadline_offset: int = 3600
    valid_after: int = 0
    valid_before_offset: int = 7200
    calldata_salt: int = 123
    gas_salt: int = 456
    gas_limit: int = 300000
    receipt_timeout: float = 120

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "ExperimentConfig":
        """
        Read settings from ESCROW_* environment variables.

        Unset variables keep their defaults, e.g. ESCROW_CHAIN_ID,
        ESCROW_RPC_URL, ESCROW_PRIVATE_KEY, ESCROW_AMOUNT,
        ESCROW_CAPTURE_ADDRESS, ESCROW_CALLDATA_SALT, ESCROW_GAS_SALT.

        Raises:
            ConfigurationError: If a variable cannot be parsed
        """
        env = os.environ if env is None else env
        values = {}
        for name in cls.model_fields:
            key = ENV_PREFIX + name.upper()
            if env.get(key):
                values[name] = env[key]
        try:
            return cls.model_validate(values)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid experiment configuration: {e}") from e

    @property
    def network(self) -> NetworkConfig:
        network = get_network_by_chain_id(self.chain_id)
        if network is None:
            raise ConfigurationError(f"Unknown chain id {self.chain_id}")
        return network

    @property
    def resolved_rpc_url(self) -> str:
        return self.rpc_url or self.network.rpc_url

    def require_private_key(self) -> str:
        if not self.private_key:
            raise ConfigurationError(f"{ENV_PREFIX}PRIVATE_KEY is not set")
        return self.private_key

    def build_inputs(
        self,
        buyer: str,
        operator: Optional[str] = None,
        now: Optional[int] = None,
    ) -> tuple[PaymentDescriptor, AuthorizationWindow]:
        """
        Build the payment terms and authorization window relative to `now`.

        Args:
            buyer: Address whose USDC is authorized
            operator: Escrow operator (defaults to the buyer, as in the reference run)
            now: Unix time to offset from (defaults to the current time)
        """
        now = int(time.time()) if now is None else now
        descriptor = PaymentDescriptor(
            operator=operator or buyer,
            buyer=buyer,
            token=self.network.usdc_address,
            capture_address=self.capture_address,
            value=self.amount,
            capture_deadline=now + self.capture_deadline_offset,
            fee_recipient=self.fee_recipient,
            fee_bps=self.fee_bps,
            created_at=now,
        )
        window = AuthorizationWindow(
            valid_after=self.valid_after,
            valid_before=now + self.valid_before_offset,
        )
        return descriptor, window

    def targets(self, variants: Optional[Sequence[EncodingVariant]] = None) -> list[VariantTarget]:
        """Escrow deployments of this chain, in the order given (both by default)."""
        contracts = get_escrow_contracts(self.chain_id)
        salts = {
            EncodingVariant.CALLDATA_OPTIMIZED: self.calldata_salt,
            EncodingVariant.GAS_OPTIMIZED: self.gas_salt,
        }
        variants = list(variants) if variants else list(EncodingVariant)
        return [
            VariantTarget(
                variant=EncodingVariant(v),
                contract=contracts[VARIANT_CONTRACT_KEYS[EncodingVariant(v)]],
                salt=salts[EncodingVariant(v)],
            )
            for v in variants
        ]
