"""Credify form relay: contact, career and loan application submissions delivered by email."""

__version__ = "1.0.0"
