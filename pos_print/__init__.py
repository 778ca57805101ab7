"""POS ticket rendering and thermal printer dispatch."""

__version__ = "0.1.0"
