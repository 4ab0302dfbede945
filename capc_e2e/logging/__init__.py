"""Logging formatters and filters for stream routing."""

from capc_e2e.logging.filters import StreamRoutingFilter
from capc_e2e.logging.formatters import StreamFormatter

__all__ = ["StreamFormatter", "StreamRoutingFilter"]
