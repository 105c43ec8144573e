"""
Field Extraction
================
Collects the headers and query parameters a rule asks for into an
AuthorizationRequest.
"""

from typing import List, Optional, Tuple

from starlette.requests import Request
import structlog

from .models import AuthorizationRequest, Rule

logger = structlog.get_logger(__name__)


def _header(request: Request, name: str) -> Optional[str]:
    value = request.headers.get(name)
    return value or None


def _query(request: Request, name: str) -> Optional[str]:
    # First value wins for repeated parameters
    values = request.query_params.getlist(name)
    if values and values[0]:
        return values[0]
    return None


def extract_fields(request: Request, rule: Rule) -> Tuple[AuthorizationRequest, bool]:
    """
    Extract the credential material required by a rule.
    
    Empty values count as absent. Every required field is checked even
    after the first one is found missing.
    
    Args:
        request: Incoming request
        rule: Rule governing the request
        
    Returns:
        Tuple of (authorization request, missing_required)
    """
    auth_request = AuthorizationRequest()
    missing: List[str] = []

    for name in rule.optional_headers:
        value = _header(request, name)
        if value:
            auth_request.headers[name] = value

    for name in rule.optional_queries:
        value = _query(request, name)
        if value:
            auth_request.queries[name] = value

    for name in rule.required_headers:
        value = _header(request, name)
        if value:
            auth_request.headers[name] = value
        else:
            missing.append(f"header:{name}")

    for name in rule.required_queries:
        value = _query(request, name)
        if value:
            auth_request.queries[name] = value
        else:
            missing.append(f"query:{name}")

    for pair in rule.header_or_query:
        value = _header(request, pair.header)
        if value:
            auth_request.headers[pair.header] = value
            continue
        value = _query(request, pair.query)
        if value:
            auth_request.queries[pair.query] = value
        else:
            missing.append(f"header_or_query:{pair.header}|{pair.query}")

    if missing:
        logger.debug("cauth_fields_missing", rule=rule.path, fields=missing)

    return auth_request, bool(missing)
