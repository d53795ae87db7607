"""toolgate: guarded command-line tools for AI agents."""

__version__ = "0.4.0"
