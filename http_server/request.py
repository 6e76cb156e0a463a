import json
from dataclasses import dataclass
from typing import Any


@dataclass
class Request:
    method: str
    path: str
    headers: dict[str, str]
    query_params: dict[str, list]
    body: bytes
    version: str

    def __post_init__(self):
        self._json: Any = None
        self._json_error: str | None = None
        if not self.body:
            return
        try:
            self._json = json.loads(self.body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            self._json_error = str(e)

    @property
    def json_body(self) -> Any:
        """Decoded JSON body, or None when absent or malformed."""
        return self._json

    @property
    def json_error(self) -> str | None:
        return self._json_error

    def get(self, field: str, default: Any = None) -> Any:
        """Look a field up in the query string first, then in a JSON object body."""
        if not field:
            raise ValueError("Field cannot be empty")

        if self.query_params.get(field):
            return self.query_params[field][0]

        if isinstance(self._json, dict) and field in self._json:
            return self._json[field]

        return default
