"""HTTP service entry point: CORS filter, JSON body decoder and router."""

__version__ = "1.0.0"
