"""Volumetric Beer-Lambert renderer for synthetic reconstruction datasets."""

__version__ = "0.1.0"
