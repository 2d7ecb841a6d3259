"""Storage discovery, read-only mounting and publishing for the AutoFS file server."""

__version__ = "1.0.0"
