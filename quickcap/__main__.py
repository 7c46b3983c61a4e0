#!/usr/bin/env python3
"""
Entry point for python -m quickcap execution.

This module enables running QuickCap as a Python module:
    python3 -m quickcap
    python3 -m quickcap --area 100,100,800,600
    python3 -m quickcap --info

The actual CLI logic is in quickcap.cli module.
"""

from quickcap.cli import main
import sys

if __name__ == "__main__":
    sys.exit(main())
