"""Grid-aware train departure optimization."""

__version__ = "0.1.0"
