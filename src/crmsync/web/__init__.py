"""HTTP server package."""

from .server import WebServer, GOOGLE_TOKEN_HEADER

__all__ = ["WebServer", "GOOGLE_TOKEN_HEADER"]
