"""
Outcome Resolution
==================
Turns extraction and delegation results into forward / reject / continue,
and renders rejection responses.
"""

from http import HTTPStatus
from typing import Optional

from starlette.requests import Request
from starlette.responses import JSONResponse, RedirectResponse, Response

from .models import AuthorizationResult, Outcome, OutcomeKind, Rule
from .placeholders import replace

INVALID_TOKEN_CHALLENGE = 'Bearer error="invalid_token"'


def resolve(
    rule: Rule,
    missing_required: bool,
    result: Optional[AuthorizationResult] = None,
) -> Outcome:
    """
    Decide what to do with a request governed by rule.
    
    Args:
        rule: Governing rule
        missing_required: True when a required field was absent
        result: Delegation result; not consulted when fields are missing
        
    Returns:
        Outcome of kind FORWARD, REJECT or CONTINUE
    """
    if missing_required:
        if rule.passthrough:
            return Outcome(OutcomeKind.CONTINUE)
        return Outcome(OutcomeKind.REJECT, status_code=HTTPStatus.UNAUTHORIZED)

    if result is None or not result.ok:
        if rule.passthrough:
            return Outcome(OutcomeKind.CONTINUE)
        code = result.status_code if result is not None else 0
        # A 200 whose body could not be decoded is still a failure
        if not code or code == HTTPStatus.OK:
            code = HTTPStatus.UNAUTHORIZED
        return Outcome(OutcomeKind.REJECT, status_code=int(code))

    return Outcome(OutcomeKind.FORWARD, headers=dict(result.headers))


def _phrase(code: int) -> str:
    try:
        return HTTPStatus(code).phrase
    except ValueError:
        return "Unauthorized"


def _redirect(request: Request, rule: Rule) -> RedirectResponse:
    return RedirectResponse(replace(rule.redirect, request), status_code=HTTPStatus.SEE_OTHER)


def build_rejection_response(request: Request, rule: Rule, status_code: int) -> Response:
    """
    Build the response for a denied request.
    
    A configured redirect wins over the status code. Otherwise the status
    code (401 when unknown) is returned with a bearer challenge.
    """
    if rule.redirect:
        return _redirect(request, rule)

    if not status_code:
        status_code = HTTPStatus.UNAUTHORIZED

    return JSONResponse(
        status_code=int(status_code),
        content={
            "error": "invalid_token",
            "message": _phrase(int(status_code)),
        },
        headers={"WWW-Authenticate": INVALID_TOKEN_CHALLENGE},
    )
