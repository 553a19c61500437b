"""Dual-stream yield pool accounting engine."""

__version__ = "0.3.0"
