"""Two-level cache hierarchy trace replayer."""

__version__ = "0.1.0"
