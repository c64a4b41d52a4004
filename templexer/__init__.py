"""templexer package entry point."""

__version__ = "0.1.0"
