"""Process-local store adapters."""
