"""Storage throughput, latency and IOPS benchmark."""

__version__ = "0.1.0"
