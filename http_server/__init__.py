"""
Minimal asyncio HTTP/1.1 server with JSON request and response helpers.
"""

from http_server.request import Request
from http_server.response import Response, error, response
from http_server.server import HTTPServer

__all__ = ["HTTPServer", "Request", "Response", "error", "response"]
