"""Local git client with observable branch state."""

__version__ = "0.1.0"
