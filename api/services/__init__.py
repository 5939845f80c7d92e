"""Weather ensemble API services package."""
from .http_client import http_client, AsyncHTTPClient

__all__ = ["http_client", "AsyncHTTPClient"]
