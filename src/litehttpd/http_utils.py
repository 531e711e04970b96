from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import PurePath

logger = logging.getLogger(__name__)


HTTP_REASONS = {
    200: "OK",
    400: "Bad Request",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    500: "Internal Server Error",
}

CONTENT_TYPES = {
    "html": "text/html; charset=utf-8",
    "txt": "text/plain; charset=utf-8",
    "css": "text/css; charset=utf-8",
    "js": "text/javascript; charset=utf-8",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "zip": "application/zip",
}

DEFAULT_CONTENT_TYPE = "application/octet-stream"
TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"

_HEADER_TERMINATORS = (b"\r\n\r\n", b"\n\n")


class MalformedRequest(ValueError):
    """The request line did not split into method, target and version."""


class RequestTooLarge(ValueError):
    """The request line and headers did not fit in the read bound."""


@dataclass
class HttpRequest:
    method: str
    target: str
    version: str
    headers: dict[str, str] = field(default_factory=dict)


@dataclass
class HttpResponse:
    status: int
    content_type: str = TEXT_CONTENT_TYPE
    body: bytes = b""

    @property
    def reason(self) -> str:
        return HTTP_REASONS.get(self.status, "")

    def encode(self) -> bytes:
        return build_response(self.status, self.content_type, self.body)


def content_type_for(path: PurePath | str) -> str:
    """Map a file name to its MIME type by exact, case-sensitive extension."""
    name = PurePath(path).name
    if "." not in name.lstrip("."):
        return DEFAULT_CONTENT_TYPE
    extension = name.rsplit(".", 1)[1]
    return CONTENT_TYPES.get(extension, DEFAULT_CONTENT_TYPE)


def _header_end(data: bytes | bytearray) -> int:
    """Offset of the blank line closing the header block, or -1."""
    found = [data.find(marker) for marker in _HEADER_TERMINATORS]
    found = [index for index in found if index != -1]
    return min(found) if found else -1


def read_request_bytes(conn, max_bytes: int = 8192) -> bytes:
    """Read from ``conn`` until the blank line ending the header block.

    Returns whatever arrived before EOF when the peer stops sending early.
    Raises ``RequestTooLarge`` when the head before that blank line is
    longer than ``max_bytes``, even if it arrived in a single read.
    """
    data = bytearray()
    end = -1
    while True:
        chunk = conn.recv(4096)
        if not chunk:
            break
        data.extend(chunk)
        end = _header_end(data)
        if end != -1:
            break
        if len(data) > max_bytes:
            raise RequestTooLarge(f"request head exceeds {max_bytes} bytes")
    if end > max_bytes:
        raise RequestTooLarge(f"request head exceeds {max_bytes} bytes")
    return bytes(data)


def _split_request_line(line: str) -> list[str]:
    # Only ASCII space and tab separate tokens.
    return [part for part in line.replace("\t", " ").split(" ") if part]


def parse_request(data: bytes) -> HttpRequest:
    # Non-UTF-8 bytes survive as surrogates so paths and script
    # environments get the octets the client sent.
    text = data.decode("utf-8", errors="surrogateescape")
    lines = [line[:-1] if line.endswith("\r") else line for line in text.split("\n")]

    parts = _split_request_line(lines[0])
    if len(parts) != 3:
        raise MalformedRequest(f"bad request line: {lines[0][:80]!r}")
    method, target, version = parts

    headers: dict[str, str] = {}
    for line in lines[1:]:
        if not line:
            break
        if ":" not in line:
            continue
        name, value = line.split(":", 1)
        headers[name.strip().lower()] = value.strip()
    return HttpRequest(method=method, target=target, version=version, headers=headers)


def read_http_request(conn, max_bytes: int = 8192) -> HttpRequest | None:
    data = read_request_bytes(conn, max_bytes)
    if not data:
        return None
    return parse_request(data)


def build_response(status: int, content_type: str, body: bytes) -> bytes:
    reason = HTTP_REASONS.get(status, "")
    lines = [
        f"HTTP/1.1 {status} {reason}",
        f"Content-Type: {content_type}",
        f"Content-Length: {len(body)}",
        "Connection: close",
        "",
        "",
    ]
    return "\r\n".join(lines).encode("latin-1") + body


def send_response(conn, response: HttpResponse) -> bool:
    try:
        conn.sendall(response.encode())
    except OSError as exc:
        logger.warning("Failed to write %s response: %s", response.status, exc)
        return False
    return True


def text_response(status: int, body: bytes = b"") -> HttpResponse:
    return HttpResponse(status=status, content_type=TEXT_CONTENT_TYPE, body=body)
