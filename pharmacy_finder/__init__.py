"""Pharmacy Finder — proximity search and booking for pharmacy directories."""

__version__ = "0.4.0"
