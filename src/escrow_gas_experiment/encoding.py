"""
Payment hash encoders for the two PaymentEscrow deployments.

Each deployment recomputes the payment hash on-chain and passes it to USDC
as the ERC-3009 nonce, so the digest built here has to match the contract's
byte for byte:

    calldata-optimized  keccak256(abi.encode(value, validAfter, validBefore,
                            captureDeadline, operator, captureAddress, feeBps,
                            feeRecipient, token, salt))

    gas-optimized       keccak256(abi.encode(PaymentDetails{token, buyer, value,
                            validAfter, validBefore, captureDeadline, operator,
                            captureAddress, feeBps, feeRecipient, salt}))

The two schemes intentionally disagree for the same payment. Encoders assume
the descriptor and window were validated on construction.

Example:
    >>> encoding = get_encoding(EncodingVariant.CALLDATA_OPTIMIZED)
    >>> digest = encoding.digest(descriptor, window, salt=123)
    >>> len(digest)
    32
"""

from typing import Optional

from eth_abi import encode
from web3 import Web3

from escrow_gas_experiment.contracts import CALLDATA_OPTIMIZED_ABI, GAS_OPTIMIZED_ABI
from escrow_gas_experiment.models import (
    AuthorizationWindow,
    BoundDigest,
    ContractCall,
    EncodingVariant,
    PaymentDescriptor,
    SignedAuthorization,
)

POSITIONAL_TYPES = [
    "uint256",  # value
    "uint256",  # validAfter
    "uint256",  # validBefore
    "uint48",  # captureDeadline
    "address",  # operator
    "address",  # captureAddress
    "uint16",  # feeBps
    "address",  # feeRecipient
    "address",  # token
    "uint256",  # salt
]

PAYMENT_STRUCT_TYPE = (
    "(address,address,uint256,uint256,uint256,uint48,address,address,uint16,address,uint256)"
)


class EscrowEncoding:
    """
    Common interface of the two encoding schemes.

    Subclasses define how a payment is hashed and how it is identified in
    the variant's authorize/capture/refund/void calls.
    """

    variant: EncodingVariant
    abi: list
    # Single-step authorize+capture
    supports_charge = False

    def digest(
        self,
        descriptor: PaymentDescriptor,
        window: AuthorizationWindow,
        salt: int,
    ) -> bytes:
        raise NotImplementedError

    def bind(
        self,
        contract: str,
        descriptor: PaymentDescriptor,
        window: AuthorizationWindow,
        salt: int,
    ) -> BoundDigest:
        """Compute the digest and tag it with the escrow contract that will verify it."""
        return BoundDigest(
            variant=self.variant,
            contract=contract,
            digest=self.digest(descriptor, window, salt),
        )

    def authorize_call(
        self,
        contract: str,
        descriptor: PaymentDescriptor,
        window: AuthorizationWindow,
        salt: int,
        authorization: SignedAuthorization,
    ) -> ContractCall:
        raise NotImplementedError

    def capture_call(
        self,
        contract: str,
        descriptor: PaymentDescriptor,
        window: AuthorizationWindow,
        salt: int,
        amount: Optional[int] = None,
    ) -> ContractCall:
        raise NotImplementedError

    def charge_call(
        self,
        contract: str,
        descriptor: PaymentDescriptor,
        window: AuthorizationWindow,
        salt: int,
        authorization: SignedAuthorization,
    ) -> ContractCall:
        raise NotImplementedError(f"{self.variant.value} escrow has no charge call")

    def refund_call(
        self,
        contract: str,
        descriptor: PaymentDescriptor,
        window: AuthorizationWindow,
        salt: int,
        amount: Optional[int] = None,
    ) -> ContractCall:
        raise NotImplementedError

    def void_call(
        self,
        contract: str,
        descriptor: PaymentDescriptor,
        window: AuthorizationWindow,
        salt: int,
    ) -> ContractCall:
        raise NotImplementedError

    def _call(self, contract: str, function: str, *args) -> ContractCall:
        return ContractCall(
            address=Web3.to_checksum_address(contract),
            abi=self.abi,
            function=function,
            args=args,
        )


class PositionalEncoding(EscrowEncoding):
    """Calldata-optimized scheme: flat fields hashed, payment identified by hash."""

    variant = EncodingVariant.CALLDATA_OPTIMIZED
    abi = CALLDATA_OPTIMIZED_ABI

    def digest(self, descriptor, window, salt):
        encoded = encode(
            POSITIONAL_TYPES,
            [
                descriptor.value,
                window.valid_after,
                window.valid_before,
                descriptor.capture_deadline,
                descriptor.operator,
                descriptor.capture_address,
                descriptor.fee_bps,
                descriptor.fee_recipient,
                descriptor.token,
                salt,
            ],
        )
        return bytes(Web3.keccak(encoded))

    def authorize_call(self, contract, descriptor, window, salt, authorization):
        return self._call(
            contract,
            "authorize",
            salt,
            descriptor.details_tuple(),
            window.valid_after,
            window.valid_before,
            descriptor.value,
            authorization.signature,
        )

    def capture_call(self, contract, descriptor, window, salt, amount=None):
        payment_hash = self.digest(descriptor, window, salt)
        amt = amount if amount is not None else descriptor.value
        return self._call(contract, "capture", payment_hash, amt)

    def refund_call(self, contract, descriptor, window, salt, amount=None):
        payment_hash = self.digest(descriptor, window, salt)
        amt = amount if amount is not None else descriptor.value
        return self._call(contract, "refund", payment_hash, amt)

    def void_call(self, contract, descriptor, window, salt):
        return self._call(contract, "void", self.digest(descriptor, window, salt))


class StructEncoding(EscrowEncoding):
    """Gas-optimized scheme: one ABI-encoded struct, passed to the contract as bytes."""

    variant = EncodingVariant.GAS_OPTIMIZED
    abi = GAS_OPTIMIZED_ABI
    supports_charge = True

    def payment_details(
        self,
        descriptor: PaymentDescriptor,
        window: AuthorizationWindow,
        salt: int,
    ) -> bytes:
        """ABI-encoded PaymentDetails tuple, the contract's `paymentDetails` argument."""
        struct = (
            descriptor.token,
            descriptor.buyer,
            descriptor.value,
            window.valid_after,
            window.valid_before,
            descriptor.capture_deadline,
            descriptor.operator,
            descriptor.capture_address,
            descriptor.fee_bps,
            descriptor.fee_recipient,
            salt,
        )
        return encode([PAYMENT_STRUCT_TYPE], [struct])

    def digest(self, descriptor, window, salt):
        return bytes(Web3.keccak(self.payment_details(descriptor, window, salt)))

    def authorize_call(self, contract, descriptor, window, salt, authorization):
        return self._call(
            contract,
            "authorize",
            descriptor.value,
            self.payment_details(descriptor, window, salt),
            authorization.signature,
        )

    def capture_call(self, contract, descriptor, window, salt, amount=None):
        amt = amount if amount is not None else descriptor.value
        return self._call(
            contract, "capture", amt, self.payment_details(descriptor, window, salt)
        )

    def charge_call(self, contract, descriptor, window, salt, authorization):
        return self._call(
            contract,
            "charge",
            descriptor.value,
            self.payment_details(descriptor, window, salt),
            authorization.signature,
        )

    def refund_call(self, contract, descriptor, window, salt, amount=None):
        amt = amount if amount is not None else descriptor.value
        return self._call(
            contract, "refund", amt, self.payment_details(descriptor, window, salt)
        )

    def void_call(self, contract, descriptor, window, salt):
        return self._call(contract, "void", self.payment_details(descriptor, window, salt))


_ENCODINGS: dict[EncodingVariant, EscrowEncoding] = {
    EncodingVariant.CALLDATA_OPTIMIZED: PositionalEncoding(),
    EncodingVariant.GAS_OPTIMIZED: StructEncoding(),
}


def get_encoding(variant: EncodingVariant) -> EscrowEncoding:
    """Return the encoder for a variant."""
    return _ENCODINGS[EncodingVariant(variant)]


def positional_digest(descriptor: PaymentDescriptor, window: AuthorizationWindow, salt: int) -> bytes:
    """Digest under the calldata-optimized scheme."""
    return _ENCODINGS[EncodingVariant.CALLDATA_OPTIMIZED].digest(descriptor, window, salt)


def struct_digest(descriptor: PaymentDescriptor, window: AuthorizationWindow, salt: int) -> bytes:
    """Digest under the gas-optimized scheme."""
    return _ENCODINGS[EncodingVariant.GAS_OPTIMIZED].digest(descriptor, window, salt)
