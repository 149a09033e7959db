"""
Command-line entry point.

Usage:
    ESCROW_PRIVATE_KEY=0x... escrow-gas-experiment
    escrow-gas-experiment --variant gas-optimized --json

The key pays gas and signs the ERC-3009 authorization, so it needs ETH and
USDC on the configured chain.
"""

import argparse
import logging
import sys
from typing import Optional

from escrow_gas_experiment.config import ExperimentConfig
from escrow_gas_experiment.errors import EscrowExperimentError
from escrow_gas_experiment.models import EncodingVariant
from escrow_gas_experiment.orchestrator import ExperimentOrchestrator
from escrow_gas_experiment.signer import AuthorizationSigner, LocalAccountSigner
from escrow_gas_experiment.transport import Web3Transport

logger = logging.getLogger("escrow_gas_experiment")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="escrow-gas-experiment",
        description="Authorize and capture a payment on both escrow encodings and compare fees.",
    )
    parser.add_argument(
        "--variant",
        action="append",
        choices=[v.value for v in EncodingVariant],
        help="Run only this variant (repeatable; default: both)",
    )
    parser.add_argument("--rpc-url", help="JSON-RPC endpoint (default: network RPC)")
    parser.add_argument("--chain-id", type=int, help="EVM chain id (default: 8453)")
    parser.add_argument("--amount", type=int, help="Payment amount in USDC atomic units")
    parser.add_argument("--json", action="store_true", help="Print the fee report as JSON")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = ExperimentConfig.from_env()
        overrides = {
            key: value
            for key, value in (
                ("rpc_url", args.rpc_url),
                ("chain_id", args.chain_id),
                ("amount", args.amount),
            )
            if value is not None
        }
        if overrides:
            config = config.model_copy(update=overrides)

        private_key = config.require_private_key()
        if not config.network.reports_l1_fee:
            logger.warning(
                "%s receipts carry no L1 fee; data availability fees will read as 0",
                config.network.display_name,
            )
        transport = Web3Transport.from_rpc(
            config.resolved_rpc_url,
            private_key,
            gas_limit=config.gas_limit,
            receipt_timeout=config.receipt_timeout,
        )
        signer = AuthorizationSigner(LocalAccountSigner.from_key(private_key), config.network)
        descriptor, window = config.build_inputs(buyer=transport.address)
        targets = config.targets([EncodingVariant(v) for v in args.variant or []])

        orchestrator = ExperimentOrchestrator(transport, signer, sink=print)
        report = orchestrator.run(targets, descriptor, window)
    except EscrowExperimentError as e:
        logger.error("Experiment failed: %s", e)
        return 1

    if args.json:
        print(report.model_dump_json(by_alias=True, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
