"""Keep a search index synchronized with the vehicle inventory table."""

__version__ = "0.1.0"
