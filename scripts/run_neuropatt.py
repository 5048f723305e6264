#!/usr/bin/env python3
"""NeuroPatt pattern analysis runner.

Usage:
    python scripts/run_neuropatt.py data/lfp.npy --fs 1017 --config scripts/user_config.py
    python scripts/run_neuropatt.py data/lfp.nc --fs 1017 --only-patterns --workers 4
    python scripts/run_neuropatt.py data/lfp.npy --fs 1017 --output results/transitions.nc

Note: User config in scripts/user_config.py, expert defaults in
neuropatt.schemas.param.
"""

import sys
from pathlib import Path

# Add src to path
project_root = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(project_root / "src"))

from neuropatt.cli.run_analysis import main


if __name__ == "__main__":
    sys.exit(main())
