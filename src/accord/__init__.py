"""Accord: federation layer of a Discord-compatible chat server."""

__version__ = "0.1.0"
