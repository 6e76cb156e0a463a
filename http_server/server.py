import asyncio
import json
import logging
import time
from typing import Awaitable, Callable, Dict, List, Optional, Tuple
from urllib.parse import parse_qs, urlparse

from .request import Request
from .response import Response, error

logger = logging.getLogger(__name__)

Handler = Callable[[Request], Awaitable[Response]]

STATUS_MESSAGES = {
    200: 'OK',
    400: 'Bad Request',
    404: 'Not Found',
    405: 'Method Not Allowed',
    413: 'Payload Too Large',
    500: 'Internal Server Error',
}

MAX_BODY_BYTES = 10 * 1024 * 1024


class RequestError(Exception):
    """A request that can be answered with an error status before routing."""

    def __init__(self, status: int, message: str):
        super().__init__(message)
        self.status = status
        self.message = message


class HTTPServer:
    def __init__(self, host: str = '0.0.0.0', port: int = 8080, read_timeout: float = 5.0):
        if not 0 <= port <= 65535:
            raise ValueError(f"port must be between 0 and 65535, got {port}")
        if read_timeout <= 0:
            raise ValueError(f"read_timeout must be > 0, got {read_timeout}")

        self.host = host
        self.port = port
        self.read_timeout = read_timeout
        self.routes: Dict[Tuple[str, str], Handler] = {}

    def route(self, path: str, methods: Optional[List[str]] = None):
        """Decorator for registering route handlers"""
        if methods is None:
            methods = ['GET']

        def decorator(handler: Handler) -> Handler:
            for method in methods:
                self.routes[(method.upper(), path)] = handler
            return handler
        return decorator

    async def parse_request(self, reader: asyncio.StreamReader) -> Optional[Request]:
        """
        Read one request off the stream.

        Returns None when the peer closed the connection or went idle.

        Raises:
            RequestError: On a malformed request line or an oversized body.
        """
        try:
            request_line = await asyncio.wait_for(reader.readline(), timeout=self.read_timeout)
        except asyncio.TimeoutError:
            return None
        if not request_line:
            return None

        parts = request_line.decode('utf-8', errors='replace').strip().split(' ', 2)
        if len(parts) != 3:
            raise RequestError(400, "Malformed request line")
        method, full_path, version = parts

        parsed_url = urlparse(full_path)

        headers = {}
        while True:
            line = await asyncio.wait_for(reader.readline(), timeout=self.read_timeout)
            if line in (b'\r\n', b'\n', b''):
                break
            header_line = line.decode('utf-8', errors='replace').strip()
            if ':' in header_line:
                key, value = header_line.split(':', 1)
                headers[key.strip().lower()] = value.strip()

        try:
            content_length = int(headers.get('content-length', 0))
        except ValueError:
            raise RequestError(400, "Invalid Content-Length header") from None
        if content_length > MAX_BODY_BYTES:
            raise RequestError(413, "Request body too large")

        body = b''
        if content_length > 0:
            body = await asyncio.wait_for(reader.readexactly(content_length), timeout=30.0)

        return Request(
            method=method.upper(),
            path=parsed_url.path,
            headers=headers,
            query_params=parse_qs(parsed_url.query),
            body=body,
            version=version
        )

    def build_response(self, response: Response) -> bytes:
        """Serialize a response with status line and headers"""
        status_text = STATUS_MESSAGES.get(response.status, 'Unknown')

        headers = dict(response.headers)
        headers.setdefault('content-type', 'text/plain')
        headers['content-length'] = str(len(response.body))
        headers['connection'] = 'keep-alive'
        headers['server'] = 'MiniRel/1.0'

        head = f"HTTP/1.1 {response.status} {status_text}\r\n" + ''.join(
            f"{key}: {value}\r\n" for key, value in headers.items()
        )
        return head.encode() + b'\r\n' + response.body

    async def handle_request(self, request: Request) -> Response:
        """Route request to its handler; unknown paths and methods get JSON errors"""
        handler = self.routes.get((request.method, request.path))

        if handler is None:
            if any(path == request.path for _, path in self.routes):
                return error(405, f"Method {request.method} not allowed on {request.path}")
            return error(404, f"Route not found: {request.path}")

        try:
            result = await handler(request)
        except Exception as e:
            logger.exception(f"Handler error on {request.method} {request.path}")
            return error(500, f"Internal error: {e}")

        if isinstance(result, Response):
            return result
        if isinstance(result, (dict, list)):
            return Response(
                status=200,
                headers={'content-type': 'application/json'},
                body=json.dumps(result).encode()
            )

        logger.error(f"Handler for {request.path} returned {type(result).__name__}")
        return error(500, "Handler returned an unsupported response type")

    async def handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        """Serve one connection until the client closes it or asks to"""
        peer = writer.get_extra_info('peername')

        try:
            while True:
                try:
                    request = await self.parse_request(reader)
                except RequestError as e:
                    writer.write(self.build_response(error(e.status, e.message)))
                    await writer.drain()
                    break
                if request is None:
                    break

                start_time = time.perf_counter()
                logger.debug(f"--> {request.method} {request.path}")

                response = await self.handle_request(request)
                writer.write(self.build_response(response))
                await writer.drain()

                elapsed_ms = (time.perf_counter() - start_time) * 1000
                logger.debug(
                    f"<-- {response.status} - {len(response.body)} bytes - {elapsed_ms:.2f}ms"
                )

                if request.headers.get('connection', '').lower() == 'close':
                    break

        except (ConnectionResetError, asyncio.IncompleteReadError, asyncio.TimeoutError):
            logger.debug(f"Connection from {peer} dropped")
        except Exception as e:
            logger.error(f"Connection error from {peer}: {e}")
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except ConnectionError:
                pass

    async def start(self):
        """Start serving until cancelled"""
        server = await asyncio.start_server(self.handle_client, self.host, self.port)

        addr = server.sockets[0].getsockname()
        logger.info(f'MiniRel HTTP server running on http://{addr[0]}:{addr[1]}')

        try:
            async with server:
                await server.serve_forever()
        except asyncio.CancelledError:
            logger.info("Server shutdown requested")
        finally:
            await self.shutdown(server)

    async def shutdown(self, server: asyncio.Server):
        logger.info("Shutting down server...")
        server.close()
        await server.wait_closed()
        logger.info("Server shutdown complete")
