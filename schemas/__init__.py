"""Schema definitions."""
