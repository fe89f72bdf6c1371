"""Operating-systems exercises: HTTP GET parser, caching proxy, process pipeline and mutual exclusion."""

__version__ = "0.1.0"
__all__ = ["mutex", "pipeline", "proxy_parse", "proxy_server"]