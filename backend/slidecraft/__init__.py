"""SlideCraft: carousel slide rendering and export service."""

__version__ = "1.0.0"
