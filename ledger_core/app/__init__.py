"""Payal wire ledger backend: vendors, wire stock IN/OUT ledger, price charts and payments."""

__version__ = "1.0.0"
