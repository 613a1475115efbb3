#!/usr/bin/env python3
"""Run the entitygraph CLI from a source checkout.

Example:
    python main.py examples/shop.yaml --validate
"""

from entitygraph.cli import main

if __name__ == "__main__":
    main()
