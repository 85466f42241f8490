#!/usr/bin/env python
"""
POS Print Bridge - Standalone Entry Point

Run directly:
    python main.py

Or with environment variables:
    POS_BRIDGE_PORT=5200 python main.py
"""

import os
import sys

# Ensure package is importable when running directly
if __name__ == '__main__':
    here = os.path.dirname(os.path.abspath(__file__))
    if here not in sys.path:
        sys.path.insert(0, here)

from pos_print_bridge.app import main


if __name__ == '__main__':
    main()
