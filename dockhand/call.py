"""Description of one API invocation, created per operation and discarded after."""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple, Union

from .connection import ConnectionDescriptor
from .errors import InvalidInputError
from .stream import DocumentCallback, Framing
from .url import Category, QueryParams, build_path, build_url

HTTP_GET = "GET"
HTTP_POST = "POST"
HTTP_DELETE = "DELETE"
HTTP_METHODS = (HTTP_GET, HTTP_POST, HTTP_DELETE)


@dataclass
class Call:
    category: Category
    method: str
    resource_id: Optional[str] = None
    params: QueryParams = field(default_factory=QueryParams)
    http_method: str = HTTP_GET
    body: Union[None, Dict[str, Any], list, bytes] = None
    content_type: Optional[str] = None
    framing: Framing = Framing.NONE
    callback: Optional[DocumentCallback] = None
    callback_args: Any = None

    def __post_init__(self):
        self.http_method = self.http_method.upper()
        if self.http_method not in HTTP_METHODS:
            raise InvalidInputError(f"Unsupported HTTP method {self.http_method}")
        if self.callback is not None and self.framing is Framing.NONE:
            raise InvalidInputError("A per-item callback needs a streaming framing")

    def path(self, descriptor: ConnectionDescriptor) -> str:
        return build_path(descriptor.api_version, self.category, self.method, self.resource_id)

    def request_target(self, descriptor: ConnectionDescriptor) -> str:
        """Path plus query, as sent on the request line over a unix socket."""
        return build_url("", self.path(descriptor), self.params)

    def url(self, descriptor: ConnectionDescriptor) -> str:
        base = "" if descriptor.is_unix else descriptor.url
        return build_url(base, self.path(descriptor), self.params)

    def encode_body(self) -> Tuple[Optional[bytes], Dict[str, str]]:
        """Serialise the body and return it with the headers it needs."""
        if self.body is None:
            if self.http_method == HTTP_POST:
                # Docker rejects some empty POSTs without an explicit length
                return None, {"Content-Length": "0"}
            return None, {}
        if isinstance(self.body, (bytes, bytearray)):
            body = bytes(self.body)
            content_type = self.content_type or "application/octet-stream"
        else:
            body = json.dumps(self.body).encode("utf-8")
            content_type = self.content_type or "application/json"
        return body, {"Content-Type": content_type, "Content-Length": str(len(body))}

    @property
    def streaming(self) -> bool:
        return self.framing is not Framing.NONE


def require(value: Any, what: str) -> str:
    """Return *value* as a stripped string, or raise if it is missing."""
    if value is None or not str(value).strip():
        raise InvalidInputError(f"{what} is required")
    return str(value).strip()
