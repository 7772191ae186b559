"""Chat channel naming, registry and routing for a game relay server."""

__version__ = "0.1.0"