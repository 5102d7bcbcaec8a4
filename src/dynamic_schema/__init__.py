"""dynamic-schema - runtime record schemas with conditional fields, formulas and migration."""

__version__ = "0.1.0"
