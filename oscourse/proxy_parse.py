"""Parsing and re-serialising HTTP GET requests for a forwarding proxy."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

MIN_REQUEST_LEN = 4
MAX_REQUEST_LEN = 65535
ROOT_ABS_PATH = "/"
CRLF = "\r\n"

__all__ = [
    "ParseError",
    "ParsedHeader",
    "ParsedRequest",
    "parse_request",
    "MIN_REQUEST_LEN",
    "MAX_REQUEST_LEN",
]


class ParseError(ValueError):
    """Raised when a request buffer cannot be parsed."""


@dataclass
class ParsedHeader:
    """A single ``key: value`` header line."""

    key: str
    value: str

    def line(self) -> str:
        return f"{self.key}: {self.value}{CRLF}"


_TOKEN_PATTERNS: dict[str, re.Pattern[str]] = {}


def _tokenize(text: str, pos: int, delims: str) -> tuple[str | None, int]:
    """Return the next token of ``text`` from ``pos`` and the position after it.

    Leading delimiter characters are skipped and the single delimiter ending
    the token is consumed, mirroring classic tokenizer semantics.
    """
    pattern = _TOKEN_PATTERNS.get(delims)
    if pattern is None:
        chars = re.escape(delims)
        pattern = re.compile(f"[{chars}]*([^{chars}]+)")
        _TOKEN_PATTERNS[delims] = pattern
    match = pattern.match(text, pos)
    if match is None:
        return None, len(text)
    end = match.end(1)
    return match.group(1), min(end + 1, len(text))


@dataclass
class ParsedRequest:
    """A parsed HTTP request: request-line fields plus ordered headers."""

    method: str
    protocol: str
    host: str
    path: str
    version: str
    port: str | None = None
    headers: list[ParsedHeader] = field(default_factory=list)

    @classmethod
    def parse(cls, data: str | bytes) -> ParsedRequest:
        """Parse a request buffer ending with an empty line."""
        if isinstance(data, (bytes, bytearray)):
            data = bytes(data).decode("latin-1")
        if not MIN_REQUEST_LEN <= len(data) <= MAX_REQUEST_LEN:
            raise ParseError(f"invalid buffer length {len(data)}")

        text = data.split("\0", 1)[0]
        if "\r\n\r\n" not in text:
            raise ParseError("invalid request line, no end of header")

        line_end = text.index(CRLF)
        line = text[:line_end]

        method, pos = _tokenize(line, 0, " ")
        if method is None:
            raise ParseError("invalid request line, no whitespace")
        if method != "GET":
            raise ParseError(f"invalid request line, method not 'GET': {method}")

        full_addr, _ = _tokenize(line, pos, " ")
        if full_addr is None:
            raise ParseError("invalid request line, no full address")
        addr_end = line.index(full_addr, pos) + len(full_addr)
        version = line[addr_end + 1:] if addr_end < len(line) else ""
        if not version.startswith("HTTP/"):
            raise ParseError(f"invalid request line, unsupported version {version}")

        protocol, pos = _tokenize(full_addr, 0, ":/")
        if protocol is None:
            raise ParseError("invalid request line, missing host")
        abs_uri_len = max(len(full_addr) - len(protocol) - len("://"), 0)

        host_port, pos = _tokenize(full_addr, pos, "/")
        if host_port is None:
            raise ParseError("invalid request line, missing host")
        if len(host_port) == abs_uri_len:
            raise ParseError("invalid request line, missing absolute path")

        raw_path, _ = _tokenize(full_addr, pos, " ")
        if raw_path is None:
            path = ROOT_ABS_PATH
        elif raw_path.startswith(ROOT_ABS_PATH):
            raise ParseError(
                "invalid request line, path cannot begin with two slash characters"
            )
        else:
            path = ROOT_ABS_PATH + raw_path

        host, pos = _tokenize(host_port, 0, ":")
        if host is None:
            raise ParseError("invalid request line, missing host")
        port, _ = _tokenize(host_port, pos, "/")

        request = cls(
            method=method,
            protocol=protocol,
            host=host,
            path=path,
            version=version,
            port=port,
        )
        request._parse_headers(text, line_end + 2)
        return request

    def _parse_headers(self, text: str, start: int) -> None:
        current = start
        while current < len(text) and not text.startswith(CRLF, current):
            colon = text.find(":", current)
            if colon == -1:
                raise ParseError("no colon found in header line")
            value_start = colon + 2
            value_end = text.find(CRLF, value_start)
            if value_end == -1:
                raise ParseError("header value is not terminated")
            self.set_header(text[current:colon], text[value_start:value_end])

            line_end = text.find(CRLF, current)
            if line_end == -1 or len(text) - line_end < 2:
                break
            current = line_end + 2

    def set_header(self, key: str, value: str) -> None:
        """Set a header, replacing any existing header with the same key."""
        if self.get_header(key) is not None:
            self.remove_header(key)
        self.headers.append(ParsedHeader(key, value))

    def get_header(self, key: str) -> ParsedHeader | None:
        """Return the header with exactly this key, or None."""
        return next((h for h in self.headers if h.key == key), None)

    def remove_header(self, key: str) -> None:
        """Remove the header with this key; raise KeyError if absent."""
        header = self.get_header(key)
        if header is None:
            raise KeyError(key)
        self.headers.remove(header)

    def request_line(self) -> str:
        """The request line, terminated by CRLF."""
        port = f":{self.port}" if self.port is not None else ""
        return (
            f"{self.method} {self.protocol}://{self.host}{port}"
            f"{self.path} {self.version}{CRLF}"
        )

    def unparse_headers(self) -> str:
        """All headers followed by the terminating empty line."""
        return "".join(h.line() for h in self.headers) + CRLF

    def unparse(self) -> str:
        """The whole request: request line, headers and terminating empty line."""
        return self.request_line() + self.unparse_headers()

    def headers_len(self) -> int:
        """Length of the serialised headers including the final CRLF."""
        return len(self.unparse_headers())

    def total_len(self) -> int:
        """Length of the whole serialised request."""
        return len(self.request_line()) + self.headers_len()


def parse_request(data: str | bytes) -> ParsedRequest:
    """Parse a request buffer into a :class:`ParsedRequest`."""
    return ParsedRequest.parse(data)