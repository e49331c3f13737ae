"""kwatch — watch a fleet of cluster resources until their status converges."""

__version__ = "0.1.0"
