"""
Application Integration
=======================
Wires rules, the delegation client and the middleware into a Starlette
or FastAPI application.

Usage:
    from fastapi import FastAPI
    from cauth import install_cauth
    
    app = FastAPI()
    install_cauth(app)  # rules from CAUTH_RULES_FILE
"""

from contextlib import asynccontextmanager
from typing import Iterable, Optional

import httpx
import structlog

from .config import CAuthConfig
from .delegation import Delegator, create_http_client
from .engine import RuleEngine
from .exceptions import ConfigurationError
from .loader import load_rules, load_rules_file
from .log_config import setup_logging
from .middleware import CAuthMiddleware
from .models import Rule

logger = structlog.get_logger(__name__)


def build_engine(
    rules: Optional[Iterable[Rule]] = None,
    config: Optional[CAuthConfig] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> RuleEngine:
    """
    Create a RuleEngine from rules (or the configured rules file).
    
    Raises:
        ConfigurationError: If no rules are given and no rules file is
            configured, or if the rules are invalid
    """
    config = config or CAuthConfig.from_env()

    if rules is None:
        if not config.rules_file:
            raise ConfigurationError("no rules given and CAUTH_RULES_FILE is not set")
        rules = load_rules_file(config.rules_file)
    else:
        rules = load_rules(rules)

    delegator = Delegator(
        client or create_http_client(config),
        timeout=config.delegation_timeout,
    )
    return RuleEngine(rules, delegator, case_sensitive=config.case_sensitive_paths)


def _close_on_shutdown(app, delegator: Delegator) -> None:
    """Close the delegation client once the application lifespan ends."""
    inner = app.router.lifespan_context

    @asynccontextmanager
    async def lifespan(lifespan_app):
        try:
            async with inner(lifespan_app) as state:
                yield state
        finally:
            await delegator.aclose()
            logger.info("cauth_delegation_client_closed")

    app.router.lifespan_context = lifespan


def install_cauth(
    app,
    rules: Optional[Iterable[Rule]] = None,
    config: Optional[CAuthConfig] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> RuleEngine:
    """
    Register CAuthMiddleware on an application.
    
    Configures logging from config unless configure_logging is off.
    When no client is passed, the engine creates one and closes it when
    the application lifespan ends.
    
    Returns:
        The engine backing the middleware
    """
    config = config or CAuthConfig.from_env()
    if config.configure_logging:
        setup_logging(config.service_name, config.log_level, config.log_json)

    engine = build_engine(rules, config, client)
    app.add_middleware(CAuthMiddleware, engine=engine)

    if client is None:
        _close_on_shutdown(app, engine.delegator)

    logger.info(
        "cauth_middleware_initiated",
        rules=len(engine.rules),
        protected_paths=[rule.path for rule in engine.rules],
    )
    return engine
