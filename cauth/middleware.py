"""
CAuth Middleware
================
Starlette middleware that runs the rule engine in front of the application.

Usage:
    from cauth import CAuthMiddleware, RuleEngine, Delegator, create_http_client
    
    engine = RuleEngine(rules, Delegator(create_http_client()))
    app.add_middleware(CAuthMiddleware, engine=engine)
"""

from typing import Dict

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
import structlog

from .engine import RuleEngine

logger = structlog.get_logger(__name__)


def inject_headers(request: Request, headers: Dict[str, str]) -> None:
    """
    Set headers on the request forwarded downstream.
    
    Existing headers with the same name (case-insensitive) are replaced.
    """
    if not headers:
        return
    replaced = {name.lower().encode("latin-1") for name in headers}
    raw = [(k, v) for k, v in request.scope["headers"] if k.lower() not in replaced]
    for name, value in headers.items():
        raw.append((name.lower().encode("latin-1"), value.encode("latin-1")))
    request.scope["headers"] = raw
    # Drop the cached Headers view built from the old list
    if hasattr(request, "_headers"):
        del request._headers


class CAuthMiddleware(BaseHTTPMiddleware):
    """
    Delegated authorization gate.
    
    Forwards the request (possibly with injected headers) to the next
    handler, or answers with the rejection response chosen by the engine.
    The governing rule, if any, is exposed as request.state.cauth_rule.
    """

    def __init__(self, app, engine: RuleEngine):
        super().__init__(app)
        self.engine = engine

    async def dispatch(self, request: Request, call_next):
        decision = await self.engine.evaluate(request)

        if not decision.forwarded:
            return decision.response

        inject_headers(request, decision.headers)
        request.state.cauth_rule = decision.rule
        return await call_next(request)
