"""
Redirect Placeholders
=====================
Substitutes request-derived values into redirect URL templates.

Supported placeholders:
    {method} {scheme} {host} {hostonly} {port} {remote}
    {path} {path_escaped} {uri} {uri_escaped} {rewrite_uri} {query}
    {>Header-Name}   value of a request header
    {?name}          value of a query parameter
    {~name}          value of a cookie

Unknown placeholders and absent values are replaced with an empty string.
"""

import re
from typing import Callable, Dict
from urllib.parse import quote

from starlette.requests import Request

_PLACEHOLDER_RE = re.compile(r"\{([^{}\s]+)\}")


def _uri(request: Request) -> str:
    query = request.url.query
    return f"{request.url.path}?{query}" if query else request.url.path


def _host(request: Request) -> str:
    return request.headers.get("host") or request.url.netloc


def _hostonly(request: Request) -> str:
    return request.url.hostname or ""


def _port(request: Request) -> str:
    if request.url.port:
        return str(request.url.port)
    return "443" if request.url.scheme in ("https", "wss") else "80"


def _remote(request: Request) -> str:
    return request.client.host if request.client else ""


_RESOLVERS: Dict[str, Callable[[Request], str]] = {
    "method": lambda r: r.method,
    "scheme": lambda r: r.url.scheme,
    "host": _host,
    "hostonly": _hostonly,
    "port": _port,
    "remote": _remote,
    "path": lambda r: r.url.path,
    "path_escaped": lambda r: quote(r.url.path, safe=""),
    "uri": _uri,
    "uri_escaped": lambda r: quote(_uri(r), safe=""),
    "rewrite_uri": _uri,
    "query": lambda r: r.url.query,
}


def _resolve(request: Request, key: str) -> str:
    if key.startswith(">"):
        return request.headers.get(key[1:], "")
    if key.startswith("?"):
        return request.query_params.get(key[1:], "")
    if key.startswith("~"):
        return request.cookies.get(key[1:], "")
    resolver = _RESOLVERS.get(key)
    if resolver is None:
        return ""
    return resolver(request)


def replace(template: str, request: Request) -> str:
    """Substitute request placeholders in a template."""
    def _sub(match: "re.Match") -> str:
        return _resolve(request, match.group(1))

    return _PLACEHOLDER_RE.sub(_sub, template)
