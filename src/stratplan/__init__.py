"""Due-date notification scheduler for strategic planning workspaces."""

__version__ = "0.1.0"
