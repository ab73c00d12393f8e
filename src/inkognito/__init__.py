"""Inkognito: anonymous confession feed engine and backing API."""

__version__ = "0.1.0"
