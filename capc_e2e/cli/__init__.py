"""Command-line interface."""

from capc_e2e.cli.main import CapcE2ECLI

__all__ = ["CapcE2ECLI"]
