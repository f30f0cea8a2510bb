#!/usr/bin/env python3
"""SIMPLE-CPU launcher.

Run program images without installing the package.

Usage:
    python main.py programs/add_five.txt
    python main.py programs/subroutine.txt --trace --log-level info
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from simple_cpu.cli import main


if __name__ == "__main__":
    sys.exit(main())
