"""Command line interface for dynamic-schema."""
