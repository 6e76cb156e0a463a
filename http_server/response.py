import json
from dataclasses import dataclass, field
from typing import Any


@dataclass
class Response:
    status: int = 200
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    def json(self, payload: Any) -> 'Response':
        headers = dict(self.headers)
        headers['content-type'] = 'application/json'

        return Response(
            status=self.status,
            headers=headers,
            body=json.dumps(payload).encode()
        )


def response(status_code: int = 200, headers: dict[str, str] | None = None) -> Response:
    return Response(
        status=status_code,
        headers={} if headers is None else headers
    )


def error(status_code: int, message: str) -> Response:
    """JSON error body in the same shape as a failed query result."""
    return response(status_code=status_code).json({"success": False, "message": message})
