"""
CAuth
=====
Delegated request authorization gate for Starlette/FastAPI services.
"""

__version__ = "0.1.0"

from cauth.config import CAuthConfig
from cauth.exceptions import (
    CAuthError,
    ConfigurationError,
    DelegationError,
    DelegationTransportError,
    DelegationTimeoutError,
    DelegationResponseError,
)
from cauth.models import (
    Rule,
    HeaderQuery,
    AuthorizationRequest,
    AuthorizationResult,
    Outcome,
    OutcomeKind,
    Decision,
    DecisionAction,
)
from cauth.matching import clean_path, path_matches
from cauth.extraction import extract_fields
from cauth.delegation import Delegator, create_http_client
from cauth.resolver import resolve, build_rejection_response
from cauth.engine import RuleEngine
from cauth.middleware import CAuthMiddleware
from cauth.directives import parse_directives
from cauth.loader import load_rules, load_rules_file
from cauth.app import build_engine, install_cauth
from cauth.log_config import setup_logging

__all__ = [
    # Config
    "CAuthConfig",
    # Errors
    "CAuthError",
    "ConfigurationError",
    "DelegationError",
    "DelegationTransportError",
    "DelegationTimeoutError",
    "DelegationResponseError",
    # Models
    "Rule",
    "HeaderQuery",
    "AuthorizationRequest",
    "AuthorizationResult",
    "Outcome",
    "OutcomeKind",
    "Decision",
    "DecisionAction",
    # Engine stages
    "clean_path",
    "path_matches",
    "extract_fields",
    "Delegator",
    "create_http_client",
    "resolve",
    "build_rejection_response",
    "RuleEngine",
    "CAuthMiddleware",
    # Loading
    "parse_directives",
    "load_rules",
    "load_rules_file",
    # Setup
    "build_engine",
    "install_cauth",
    "setup_logging",
]
