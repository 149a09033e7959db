import sys

from escrow_gas_experiment.cli import main

sys.exit(main())
