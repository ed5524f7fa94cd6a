#!/usr/bin/env python3
"""
Kmeans MPI demo entry point.

1. Put your credentials in config.yml (see config.yml.example)
2. Run from the directory holding input/ and code/:
     python run_kmeans.py
"""

import sys
from pathlib import Path

# Add src to Python path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from clusterjob.presentation.cli import main

if __name__ == '__main__':
    sys.exit(main())
