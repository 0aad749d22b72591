#!/usr/bin/env python3
"""PyInstaller entrypoint for the exoscale-store binary.

This thin wrapper reuses the project CLI so that a frozen, single-file
binary can be built for distribution.
"""

from exoscale_store.cli import main


if __name__ == "__main__":
    main()
