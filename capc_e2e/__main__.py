#!/usr/bin/env python3
"""Run capc-e2e scenarios from the command line."""

from capc_e2e.cli.main import main

if __name__ == "__main__":
    main()
