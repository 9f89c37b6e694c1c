"""UI push server for XARB."""

from server.app import ConnectionManager, create_app

__all__ = ["ConnectionManager", "create_app"]
