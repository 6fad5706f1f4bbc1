"""Authoritative server for the three-player expedition party game."""

__version__ = "1.0.0"
