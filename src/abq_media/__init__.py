"""Resumable, interactive content-transformation workflows."""

__version__ = "0.1.0"
