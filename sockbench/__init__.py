"""Multi-protocol socket load generator and throughput comparison."""

__version__ = "0.1.0"
