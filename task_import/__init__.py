"""Bulk task import: CSV / JSON normalization, operator review and commit."""

__version__ = "0.1.0"
