"""API layer: HTTP and websocket surface of the service."""
