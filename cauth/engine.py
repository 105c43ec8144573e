"""
Rule Engine
===========
Evaluates a request against the ordered rule list.

The first rule whose path matches (and which is not skipped for OPTIONS,
an excepted path or the root exemption) governs the request. Only a
passthrough failure lets evaluation continue to later rules.
"""

from typing import Iterable, Optional, Tuple

from starlette.requests import Request
import structlog

from .delegation import Delegator
from .extraction import extract_fields
from .matching import clean_path, matches_any, path_matches
from .models import AuthorizationResult, Decision, DecisionAction, OutcomeKind, Rule
from .resolver import build_rejection_response, resolve

logger = structlog.get_logger(__name__)

PREFLIGHT_METHOD = "OPTIONS"


class RuleEngine:
    """Ordered rule evaluation with delegated authorization."""

    def __init__(
        self,
        rules: Iterable[Rule],
        delegator: Delegator,
        case_sensitive: bool = True,
    ):
        self.rules: Tuple[Rule, ...] = tuple(rules)
        self.delegator = delegator
        self.case_sensitive = case_sensitive

    def _governs(self, rule: Rule, method: str, path: str) -> bool:
        """Check whether rule applies to a request with this method and cleaned path."""
        if not path_matches(path, rule.path, self.case_sensitive):
            return False
        if method == PREFLIGHT_METHOD:
            return False
        if matches_any(path, rule.excepted_paths, self.case_sensitive):
            logger.debug("cauth_path_excepted", rule=rule.path, path=path)
            return False
        if path == "/" and rule.allow_root:
            return False
        return True

    async def evaluate(self, request: Request) -> Decision:
        """
        Decide how to handle a request.
        
        Returns:
            FORWARD decision with headers to inject, or REJECT decision
            carrying the response to send
        """
        path = clean_path(request.url.path)
        method = request.method.upper()

        for rule in self.rules:
            if not self._governs(rule, method, path):
                continue

            auth_request, missing_required = extract_fields(request, rule)

            result: Optional[AuthorizationResult] = None
            if not missing_required:
                result = await self.delegator.delegate(rule, auth_request)

            outcome = resolve(rule, missing_required, result)

            if outcome.kind == OutcomeKind.CONTINUE:
                logger.info(
                    "cauth_rule_passthrough",
                    rule=rule.path,
                    path=path,
                    missing_fields=missing_required,
                )
                continue

            if outcome.kind == OutcomeKind.FORWARD:
                logger.debug("cauth_request_authorized", rule=rule.path, path=path)
                return Decision(
                    action=DecisionAction.FORWARD,
                    rule=rule,
                    headers=outcome.headers,
                )

            logger.warning(
                "cauth_request_rejected",
                rule=rule.path,
                path=path,
                method=method,
                status=outcome.status_code,
                missing_fields=missing_required,
                redirect=bool(rule.redirect),
            )
            return Decision(
                action=DecisionAction.REJECT,
                rule=rule,
                response=build_rejection_response(request, rule, outcome.status_code),
            )

        return Decision(action=DecisionAction.FORWARD)
