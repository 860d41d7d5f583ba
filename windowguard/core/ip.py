"""Best-effort client address extraction.

Used as the default identifier for rate limiting when no custom key
generator is configured.
"""

from collections.abc import Mapping
from typing import Any

# Common proxy headers, in priority order
PROXY_HEADERS = (
    "x-forwarded-for",
    "x-real-ip",
    "cf-connecting-ip",
    "x-client-ip",
    "x-cluster-client-ip",
    "forwarded-for",
    "forwarded",
)

UNKNOWN_CLIENT = "unknown"


def _get_header(headers: Any, name: str) -> str | None:
    """Look up a header case-insensitively.

    Starlette ``Headers`` are already case-insensitive; plain dicts (for
    example ASGI scope dumps or test doubles) are scanned.
    """
    if headers is None:
        return None
    value = headers.get(name)
    if value is None and isinstance(headers, Mapping):
        for key, candidate in headers.items():
            if isinstance(key, str) and key.lower() == name:
                value = candidate
                break
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if isinstance(value, bytes):
        value = value.decode("latin-1")
    return value


def extract_ip(headers: Any) -> str:
    """Extract the best-guess client IP from request headers.

    Args:
        headers: Any mapping-like object exposing ``get``.

    Returns:
        The leftmost address of the first populated proxy header, or
        ``"unknown"`` when nothing can be determined.
    """
    for header in PROXY_HEADERS:
        raw = _get_header(headers, header)
        if not raw:
            continue
        # x-forwarded-for may be comma-separated; take the leftmost address
        ip = raw.split(",")[0].strip()
        if ip:
            return ip
    return UNKNOWN_CLIENT


def default_key_generator(request: Any) -> str:
    """Derive a rate limit identifier from a request.

    Proxy headers win; otherwise the socket peer address of a Starlette
    request is used.
    """
    ip = extract_ip(getattr(request, "headers", None))
    if ip != UNKNOWN_CLIENT:
        return ip
    client = getattr(request, "client", None)
    host = getattr(client, "host", None) if client is not None else None
    return host or UNKNOWN_CLIENT
