"""Core engine: configuration, normalization, reconciliation, projection."""
