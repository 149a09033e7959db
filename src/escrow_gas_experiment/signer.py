"""
ERC-3009 ReceiveWithAuthorization signing.

The escrow contract pulls the buyer's USDC with receiveWithAuthorization,
which only accepts a call whose msg.sender equals the signed `to` address.
The signed nonce is the escrow's payment digest, so the authorization is
bound to one payment on one escrow contract.
"""

import logging
from typing import Any, Optional, Protocol

from eth_account import Account
from eth_account.messages import encode_typed_data
from eth_account.signers.local import LocalAccount
from web3 import Web3

from escrow_gas_experiment.errors import SigningError
from escrow_gas_experiment.models import (
    AuthorizationWindow,
    BoundDigest,
    PaymentDescriptor,
    SignedAuthorization,
)
from escrow_gas_experiment.networks import NetworkConfig, get_usdc_domain

PRIMARY_TYPE = "ReceiveWithAuthorization"

RECEIVE_WITH_AUTHORIZATION_TYPES = {
    PRIMARY_TYPE: [
        {"name": "from", "type": "address"},
        {"name": "to", "type": "address"},
        {"name": "value", "type": "uint256"},
        {"name": "validAfter", "type": "uint256"},
        {"name": "validBefore", "type": "uint256"},
        {"name": "nonce", "type": "bytes32"},
    ],
}


class TypedDataSigner(Protocol):
    """Protocol for signing capabilities (key holders)."""

    address: str

    def sign_typed_data(
        self,
        domain: dict[str, Any],
        types: dict[str, list],
        primary_type: str,
        message: dict[str, Any],
    ) -> bytes:
        """Sign an EIP-712 message and return the raw signature bytes."""
        ...


class LocalAccountSigner:
    """TypedDataSigner backed by an in-process eth_account key."""

    def __init__(self, account: LocalAccount):
        self.account = account
        self.address = account.address

    @classmethod
    def from_key(cls, private_key: str) -> "LocalAccountSigner":
        return cls(Account.from_key(private_key))

    def sign_typed_data(self, domain, types, primary_type, message) -> bytes:
        if primary_type not in types:
            raise ValueError(f"Unknown primary type {primary_type!r}")
        signable = encode_typed_data(
            domain_data=domain,
            message_types={primary_type: types[primary_type]},
            message_data=message,
        )
        signed = self.account.sign_message(signable)
        return bytes(signed.signature)


class AuthorizationSigner:
    """
    Builds and signs ReceiveWithAuthorization requests for escrow payments.

    Args:
        signer: Signing capability holding the buyer's key
        network: Network whose USDC contract verifies the authorization
        logger: Optional logger instance
    """

    def __init__(
        self,
        signer: TypedDataSigner,
        network: NetworkConfig,
        logger: Optional[logging.Logger] = None,
    ):
        self.signer = signer
        self.network = network
        self.logger = logger or logging.getLogger(__name__)

    @property
    def domain(self) -> dict[str, Any]:
        domain = get_usdc_domain(self.network)
        domain["verifyingContract"] = Web3.to_checksum_address(domain["verifyingContract"])
        return domain

    def build_message(
        self,
        bound: BoundDigest,
        descriptor: PaymentDescriptor,
        window: AuthorizationWindow,
    ) -> dict[str, Any]:
        """ReceiveWithAuthorization message with `to` bound to the digest's contract."""
        return {
            "from": descriptor.buyer,
            "to": bound.contract,
            "value": descriptor.value,
            "validAfter": window.valid_after,
            "validBefore": window.valid_before,
            "nonce": bound.digest,
        }

    def sign(
        self,
        bound: BoundDigest,
        descriptor: PaymentDescriptor,
        window: AuthorizationWindow,
    ) -> SignedAuthorization:
        """
        Sign the authorization for one bound digest.

        Args:
            bound: Payment digest tagged with its escrow contract
            descriptor: Payment terms the digest was computed from
            window: Authorization validity window

        Returns:
            SignedAuthorization carrying the unmodified signature bytes

        Raises:
            SigningError: If the key holder is not the buyer, or signing fails
        """
        variant = bound.variant.value
        if Web3.to_checksum_address(self.signer.address) != descriptor.buyer:
            raise SigningError(
                f"Signer {self.signer.address} is not the buyer {descriptor.buyer}",
                variant=variant,
            )

        message = self.build_message(bound, descriptor, window)
        self.logger.debug(
            "Signing %s for %s: nonce=%s to=%s", PRIMARY_TYPE, variant, bound.hex, bound.contract
        )
        try:
            signature = self.signer.sign_typed_data(
                self.domain,
                RECEIVE_WITH_AUTHORIZATION_TYPES,
                PRIMARY_TYPE,
                message,
            )
        except Exception as e:
            raise SigningError(f"Signing failed: {e}", variant=variant) from e

        if not signature:
            raise SigningError("Signer returned an empty signature", variant=variant)
        return SignedAuthorization(digest=bound, signature=bytes(signature))
