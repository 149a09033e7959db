"""
Programmatic escrow gas experiment.

Runs authorize/capture on both escrow encodings with a fixed clock and
prints the fee comparison as JSON.

Environment variables:
    ESCROW_PRIVATE_KEY: Buyer key (needs ETH for gas and USDC on Base)
    ESCROW_RPC_URL: JSON-RPC endpoint (optional, defaults to mainnet.base.org)
"""

import logging
import time

from escrow_gas_experiment.config import ExperimentConfig
from escrow_gas_experiment.orchestrator import ExperimentOrchestrator
from escrow_gas_experiment.signer import AuthorizationSigner, LocalAccountSigner
from escrow_gas_experiment.transport import Web3Transport

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def main() -> None:
    config = ExperimentConfig.from_env()
    private_key = config.require_private_key()

    transport = Web3Transport.from_rpc(config.resolved_rpc_url, private_key)
    signer = AuthorizationSigner(LocalAccountSigner.from_key(private_key), config.network)

    # Pin the clock so the printed payment hashes can be recomputed offline
    now = int(time.time())
    descriptor, window = config.build_inputs(buyer=transport.address, now=now)
    logger.info("Experiment clock: %d", now)

    orchestrator = ExperimentOrchestrator(transport, signer)
    report = orchestrator.run(config.targets(), descriptor, window)
    print(report.model_dump_json(by_alias=True, indent=2))


if __name__ == "__main__":
    main()
