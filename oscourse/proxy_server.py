"""A threaded HTTP forwarding proxy with a shared LRU response cache."""

from __future__ import annotations

import socket
import sys
import threading
import time
from collections import OrderedDict
from collections.abc import Sequence
from dataclasses import dataclass, field
from http import HTTPStatus

from oscourse.proxy_parse import MAX_REQUEST_LEN, ParsedRequest, ParseError

__all__ = ["CacheElement", "LRUCache", "ProxyServer", "parse_port", "main"]

MAX_CLIENTS = 10
DEFAULT_PORT = 8080
DEFAULT_HTTP_PORT = 80
MAX_CACHE_SIZE = 200 * (1 << 20)
MAX_ELEMENT_SIZE = 10 * (1 << 20)
BUFFER_SIZE = 4096
CLIENT_TIMEOUT = 30.0
REMOTE_TIMEOUT = 30.0
ACCEPT_POLL = 0.2


@dataclass
class CacheElement:
    """A cached response keyed by its request."""

    data: bytes
    url: str
    lru_time_track: float = field(default_factory=time.time)

    @property
    def size(self) -> int:
        return len(self.data) + len(self.url.encode("utf-8"))


class LRUCache:
    """A thread-safe cache evicting the least recently used element first."""

    def __init__(self, max_size: int = MAX_CACHE_SIZE, max_element_size: int = MAX_ELEMENT_SIZE):
        self.max_size = max_size
        self.max_element_size = max_element_size
        self.size = 0
        self._elements: OrderedDict[str, CacheElement] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._elements)

    def __contains__(self, url: object) -> bool:
        with self._lock:
            return url in self._elements

    def find(self, url: str) -> CacheElement | None:
        """Return the element for ``url`` and mark it as recently used."""
        with self._lock:
            element = self._elements.get(url)
            if element is None:
                return None
            element.lru_time_track = time.time()
            self._elements.move_to_end(url)
            return element

    def add(self, data: bytes, url: str) -> bool:
        """Cache ``data`` under ``url``; return False if it is too large to keep."""
        element = CacheElement(bytes(data), url)
        if element.size > self.max_element_size or element.size > self.max_size:
            return False
        with self._lock:
            previous = self._elements.pop(url, None)
            if previous is not None:
                self.size -= previous.size
            while self._elements and self.size + element.size > self.max_size:
                self._pop_oldest()
            self._elements[url] = element
            self.size += element.size
        return True

    def remove_oldest(self) -> CacheElement | None:
        """Evict and return the least recently used element, or None if empty."""
        with self._lock:
            return self._pop_oldest()

    def _pop_oldest(self) -> CacheElement | None:
        if not self._elements:
            return None
        _, element = self._elements.popitem(last=False)
        self.size -= element.size
        return element


def _error_response(status: HTTPStatus) -> bytes:
    body = (
        f"<html><head><title>{status.value} {status.phrase}</title></head>"
        f"<body><h1>{status.value} {status.phrase}</h1></body></html>"
    )
    date = time.strftime("%a, %d %b %Y %H:%M:%S GMT", time.gmtime())
    head = (
        f"HTTP/1.1 {status.value} {status.phrase}\r\n"
        f"Content-Length: {len(body)}\r\n"
        "Connection: close\r\n"
        "Content-Type: text/html\r\n"
        f"Date: {date}\r\n"
        "\r\n"
    )
    return (head + body).encode("latin-1")


def _receive_request(client: socket.socket) -> bytes:
    data = b""
    while b"\r\n\r\n" not in data and len(data) <= MAX_REQUEST_LEN:
        chunk = client.recv(BUFFER_SIZE)
        if not chunk:
            break
        data += chunk
    return data


class ProxyServer:
    """Accept clients and forward their GET requests, caching the responses."""

    def __init__(
        self,
        port: int = DEFAULT_PORT,
        host: str = "",
        cache: LRUCache | None = None,
        max_clients: int = MAX_CLIENTS,
    ):
        self.cache = cache if cache is not None else LRUCache()
        self._slots = threading.BoundedSemaphore(max_clients)
        self._closed = threading.Event()
        self._socket = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            self._socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            self._socket.bind((host, port))
            self._socket.listen(max_clients)
        except OSError:
            self._socket.close()
            raise
        self._socket.settimeout(ACCEPT_POLL)
        self.address: tuple[str, int] = self._socket.getsockname()[:2]

    def __enter__(self) -> ProxyServer:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def serve_forever(self) -> None:
        """Accept connections until :meth:`close` is called."""
        while not self._closed.is_set():
            try:
                client, address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError:
                if self._closed.is_set():
                    return
                raise
            client.settimeout(CLIENT_TIMEOUT)
            threading.Thread(target=self._serve_client, args=(client,), daemon=True).start()

    def close(self) -> None:
        """Stop accepting connections and release the listening socket."""
        self._closed.set()
        self._socket.close()

    def _serve_client(self, client: socket.socket) -> None:
        with self._slots, client:
            try:
                self._handle(client)
            except OSError:
                pass

    def _handle(self, client: socket.socket) -> None:
        raw = _receive_request(client)
        if not raw:
            return
        key = raw.decode("latin-1")

        cached = self.cache.find(key)
        if cached is not None:
            client.sendall(cached.data)
            return

        try:
            request = ParsedRequest.parse(raw)
            remote_port = int(request.port) if request.port else DEFAULT_HTTP_PORT
        except (ParseError, ValueError):
            client.sendall(_error_response(HTTPStatus.BAD_REQUEST))
            return

        chunks: list[bytes] = []
        try:
            self._forward(request, remote_port, client, chunks)
        except OSError:
            if not chunks:
                client.sendall(_error_response(HTTPStatus.INTERNAL_SERVER_ERROR))
            return
        if chunks:
            self.cache.add(b"".join(chunks), key)

    @staticmethod
    def _forward(
        request: ParsedRequest, port: int, client: socket.socket, chunks: list[bytes]
    ) -> None:
        request.set_header("Connection", "close")
        if request.get_header("Host") is None:
            host = request.host if request.port is None else f"{request.host}:{request.port}"
            request.set_header("Host", host)
        wire = f"{request.method} {request.path} {request.version}\r\n{request.unparse_headers()}"
        with socket.create_connection((request.host, port), timeout=REMOTE_TIMEOUT) as remote:
            remote.sendall(wire.encode("latin-1"))
            while chunk := remote.recv(BUFFER_SIZE):
                client.sendall(chunk)
                chunks.append(chunk)


def parse_port(argv: Sequence[str]) -> int:
    """Return the port given as the single command-line argument."""
    if len(argv) != 1:
        raise ValueError("Too few arguments" if len(argv) < 1 else "Too many arguments")
    try:
        port = int(argv[0])
    except ValueError:
        raise ValueError(f"invalid port: {argv[0]}") from None
    if not 0 <= port <= 65535:
        raise ValueError(f"invalid port: {argv[0]}")
    return port


def main(argv: Sequence[str] | None = None) -> int:
    """Run the caching proxy on the port given on the command line."""
    args = list(sys.argv[1:] if argv is None else argv)
    try:
        port = parse_port(args)
    except ValueError as exc:
        print(exc)
        return 1

    print(f"Starting proxy server at port {port}")
    try:
        server = ProxyServer(port)
    except OSError as exc:
        print(f"Port is not available: {exc}", file=sys.stderr)
        return 1
    print(f"Binding on port {port}")

    with server:
        try:
            server.serve_forever()
        except KeyboardInterrupt:
            pass
    return 0


if __name__ == "__main__":
    sys.exit(main())