"""Errors, command execution, file copying, terminal helpers and cluster configuration."""

__version__ = "0.12.0a0"