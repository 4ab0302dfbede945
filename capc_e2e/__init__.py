"""capc-e2e - negative-outcome convergence tests for Cluster API CloudStack."""

__version__ = "0.1.0"
