#!/usr/bin/env python3
"""
Snipe-IT accessory sync entry point.
"""

import sys

from snipe_sync.cli import main

if __name__ == "__main__":
    sys.exit(main())
