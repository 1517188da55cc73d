#!/usr/bin/env python3
"""``burstfuse`` burst merge runner.

Usage:
    python scripts/run_burst_pipeline.py bursts/IMG_0042/
    python scripts/run_burst_pipeline.py bursts/IMG_0042/ -c scripts/user_config.py
    python scripts/run_burst_pipeline.py a.dng b.dng c.dng --exposure-control Curve0EV

Note: User config in scripts/user_config.py, expert defaults in burstfuse.schemas.param
"""

import sys
from pathlib import Path

# Add src to path
project_root = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(project_root / "src"))

from burstfuse.cli.run_burst import main


if __name__ == "__main__":
    sys.exit(main())
