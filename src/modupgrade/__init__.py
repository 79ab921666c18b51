"""Upgrade the major version of a Go module or of its dependencies."""

__version__ = "0.1.0"
