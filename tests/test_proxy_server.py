import socket
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

from oscourse.proxy_server import (
    CacheElement,
    LRUCache,
    ProxyServer,
    main,
    parse_port,
)


def test_cache_element_size_counts_data_and_url():
    element = CacheElement(b"abcd", "url")
    assert element.size == len(b"abcd") + len("url")


def test_cache_find_missing_returns_none():
    assert LRUCache().find("nothing") is None


def test_cache_add_and_find_round_trip():
    cache = LRUCache()
    assert cache.add(b"response", "request") is True
    element = cache.find("request")
    assert element.data == b"response"
    assert element.url == "request"
    assert cache.size == element.size


def test_cache_evicts_least_recently_used():
    cache = LRUCache(max_size=20, max_element_size=20)
    cache.add(b"aaaa", "u1")
    cache.add(b"bbbb", "u2")
    cache.add(b"cccc", "u3")
    cache.find("u1")
    cache.add(b"dddd", "u4")
    assert "u2" not in cache
    assert "u1" in cache and "u3" in cache and "u4" in cache
    assert cache.size <= cache.max_size


def test_cache_rejects_oversized_element():
    cache = LRUCache(max_size=100, max_element_size=10)
    assert cache.add(b"x" * 30, "big") is False
    assert "big" not in cache
    assert cache.size == 0


def test_cache_replacing_url_keeps_size_consistent():
    cache = LRUCache()
    cache.add(b"first", "key")
    cache.add(b"second-version", "key")
    assert len(cache) == 1
    assert cache.find("key").data == b"second-version"
    assert cache.size == CacheElement(b"second-version", "key").size


def test_remove_oldest_order_and_empty():
    cache = LRUCache()
    cache.add(b"one", "a")
    cache.add(b"two", "b")
    assert cache.remove_oldest().url == "a"
    assert cache.remove_oldest().url == "b"
    assert cache.remove_oldest() is None
    assert cache.size == 0


def test_cache_size_invariant_under_many_adds():
    cache = LRUCache(max_size=50, max_element_size=50)
    for n in range(40):
        cache.add(b"payload" * (n % 5 + 1), f"url-{n}")
        assert cache.size <= cache.max_size


def test_parse_port_accepts_single_argument():
    assert parse_port(["9090"]) == 9090


def test_parse_port_requires_argument():
    with pytest.raises(ValueError, match="Too few arguments"):
        parse_port([])


def test_parse_port_rejects_garbage():
    with pytest.raises(ValueError):
        parse_port(["not-a-port"])


def test_main_without_arguments_fails(capsys):
    assert main([]) == 1
    assert "Too few arguments" in capsys.readouterr().out


@pytest.fixture
def origin():
    hits = []

    class Handler(BaseHTTPRequestHandler):
        def do_GET(self):
            hits.append(self.path)
            body = f"path={self.path}".encode()
            self.send_response(200)
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)

        def log_message(self, *args):
            pass

    server = ThreadingHTTPServer(("127.0.0.1", 0), Handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield server.server_address[1], hits
    server.shutdown()
    server.server_close()
    thread.join()


@pytest.fixture
def proxy():
    server = ProxyServer(port=0, host="127.0.0.1")
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield server
    server.close()
    thread.join(timeout=5)


def _exchange(address, request):
    with socket.create_connection(address, timeout=10) as conn:
        conn.sendall(request)
        chunks = []
        while chunk := conn.recv(4096):
            chunks.append(chunk)
    return b"".join(chunks)


def test_proxy_forwards_and_caches(origin, proxy):
    port, hits = origin
    request = f"GET http://127.0.0.1:{port}/hello HTTP/1.0\r\n\r\n".encode()
    first = _exchange(proxy.address, request)
    assert first.endswith(b"path=/hello")
    assert hits == ["/hello"]
    assert request.decode("latin-1") in proxy.cache

    second = _exchange(proxy.address, request)
    assert second == first
    assert hits == ["/hello"]


def test_proxy_rejects_unsupported_method(proxy):
    response = _exchange(proxy.address, b"POST http://127.0.0.1/x HTTP/1.0\r\n\r\n")
    assert response.startswith(b"HTTP/1.1 400 Bad Request\r\n")
    assert len(proxy.cache) == 0


def test_proxy_close_stops_serving():
    server = ProxyServer(port=0, host="127.0.0.1")
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    server.close()
    thread.join(timeout=5)
    assert not thread.is_alive()