from .server import HTTPServer

__all__ = ["HTTPServer"]
