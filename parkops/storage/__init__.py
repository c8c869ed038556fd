"""Storage package - persistence adapters."""
