"""Resumable GitHub organization commit collector."""

__version__ = "0.1.0"
