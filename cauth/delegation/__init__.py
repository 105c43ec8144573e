from .client import Delegator, create_http_client, USER_AGENT

__all__ = [
    "Delegator",
    "create_http_client",
    "USER_AGENT",
]
