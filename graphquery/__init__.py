"""Weighted directed graph path queries, served over HTTP."""

__version__ = "1.0.0"
__all__ = ["__version__"]