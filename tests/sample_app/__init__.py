"""A small marketplace used to exercise package scanning."""
