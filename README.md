# oscourse

Small operating-systems exercises, usable as a library and as three commands:

- `oscourse.proxy_parse`: a parser for HTTP `GET` requests with an absolute
  URL (`ParsedRequest`, `parse_request`), with header get/set/remove and
  serialisation back to text.
- `oscourse.proxy_server`: a threaded HTTP forwarding proxy with a
  thread-safe LRU response cache (`LRUCache`, `ProxyServer`).
- `oscourse.pipeline`: runs two commands with the first one's output piped
  into the second, like `cat file | grep word`.
- `oscourse.mutex`: the lock-variable, Peterson and strict-alternation
  approaches to mutual exclusion, run on two threads.

The package has no dependencies beyond the standard library.

## Installation

```
pip install .
```

For the test suite:

```
pip install ".[test]"
pytest
```

## Parsing requests

```python
from oscourse.proxy_parse import ParsedRequest, ParseError

raw = (
    b"GET http://www.example.com:80/index.html HTTP/1.0\r\n"
    b"Content-Length: 80\r\n\r\n"
)
req = ParsedRequest.parse(raw)          # accepts str or bytes
req.method                              # "GET"
req.protocol                            # "http"
req.host                                # "www.example.com"
req.port                                # "80" (None when absent)
req.path                                # "/index.html" ("/" when absent)
req.version                             # "HTTP/1.0"
req.get_header("Content-Length").value  # "80"

req.set_header("Connection", "close")   # replaces a header with the same key
req.remove_header("Content-Length")     # KeyError if there is no such header
req.request_line()                      # the request line, ending in CRLF
req.unparse_headers()                   # headers plus the closing blank line, as str
req.unparse()                           # the whole request, as str
req.headers_len(), req.total_len()      # lengths of those two strings
```

`ParseError` (a `ValueError`) is raised for buffers shorter than 4 or longer
than 65535 characters, requests with no blank line ending the headers,
methods other than `GET`, versions not starting with `HTTP/`, URLs without a
host or without a path after it, paths starting with `//`, and header lines
without a colon.

## The caching proxy

```python
from oscourse.proxy_server import LRUCache, ProxyServer

with ProxyServer(port=8080, cache=LRUCache()) as server:
    server.serve_forever()              # until server.close() is called
```

Each client is served on its own thread, at most ten at a time by default.
A request is looked up in the cache by its raw text; on a miss it is parsed,
sent on to the origin server (port 80 unless the URL names one) with
`Connection: close`, and the response is streamed back to the client and
cached. Unparseable requests get a `400 Bad Request` reply; failure to reach
the origin gets `500 Internal Server Error`.

`LRUCache` holds up to 200 MiB in total and refuses single entries over
10 MiB; `find(url)` marks an entry as recently used, `add(data, url)` evicts
the least recently used entries to make room, and `remove_oldest()` evicts
one explicitly.

## Commands

Start the caching proxy on a port:

```
oscourse-proxy 8080
```

Run a two-stage pipeline (with no arguments it runs `cat main.cpp | grep hello`):

```
oscourse-pipeline "cat main.py" "grep hello"
```

Run a mutual-exclusion demonstration, one of `lock`, `peterson` or `turn`:

```
oscourse-mutex lock
oscourse-mutex peterson -n 1000
oscourse-mutex turn -n 5
```

`lock` prints the final counter value after two threads each add 100000
(or `-n`) to it. `peterson` prints `Thread <n> <value>` on every increment,
10000000 times per thread unless `-n` is given. `turn` prints
`Thread 1 <value>` and `Thread 2 <value>` alternately, forever unless `-n`
limits the rounds per thread.

## What it does not do

The proxy handles only plain-HTTP `GET` requests with absolute URLs: there is
no `CONNECT`/HTTPS tunnelling, no other methods, and the cache lives in memory
only and is neither persisted nor subject to any expiry or HTTP caching rules.