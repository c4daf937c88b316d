"""Core configuration for the Accord server."""
