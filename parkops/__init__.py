"""ParkOps reservation lifecycle and pricing engine."""

__version__ = "0.1.0"
