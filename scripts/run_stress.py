#!/usr/bin/env python
"""
Run the stress units of a project with baseline comparison.

Usage:
    python scripts/run_stress.py                          # Run all units
    python scripts/run_stress.py --bin stress_demo        # Run one unit
    python scripts/run_stress.py --runs 5 --warmup 1      # Median of 5 runs
    python scripts/run_stress.py --baseline base.json     # Regression gate
"""

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from stresslib.orchestrator.cli import main


if __name__ == "__main__":
    sys.exit(main())
