"""
CAuth Models
============
Rule definitions and the per-request data passed between the engine stages.
"""

from typing import Dict, Optional, Tuple, Any
from dataclasses import dataclass, field
from enum import Enum

import httpx
from pydantic import BaseModel, ConfigDict, field_validator, model_validator


class HeaderQuery(BaseModel):
    """A credential satisfied by either a header or a query parameter (header wins)."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    header: str
    query: str

    @model_validator(mode="before")
    @classmethod
    def _from_pair(cls, value: Any) -> Any:
        # Accept ["X-Api-Key", "api_key"] as well as {"header": ..., "query": ...}
        if isinstance(value, (list, tuple)):
            if len(value) != 2:
                raise ValueError("header_or_query expects exactly a header name and a query name")
            return {"header": value[0], "query": value[1]}
        return value

    @field_validator("header", "query")
    @classmethod
    def _not_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("name must not be empty")
        return value


class Rule(BaseModel):
    """
    Configuration for one protected path.
    
    Rules are immutable once loaded and shared by every concurrent
    request evaluation.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    path: str
    endpoint: Optional[str] = None
    excepted_paths: Tuple[str, ...] = ()
    required_headers: Tuple[str, ...] = ()
    optional_headers: Tuple[str, ...] = ()
    required_queries: Tuple[str, ...] = ()
    optional_queries: Tuple[str, ...] = ()
    header_or_query: Tuple[HeaderQuery, ...] = ()
    redirect: Optional[str] = None
    allow_root: bool = False
    passthrough: bool = False
    strip_header: bool = False

    @field_validator("path")
    @classmethod
    def _path_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Each rule must have a path")
        return value

    @field_validator("endpoint")
    @classmethod
    def _valid_endpoint(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        try:
            url = httpx.URL(value)
        except (httpx.InvalidURL, TypeError) as e:
            raise ValueError(f"couldn't parse endpoint: {e}")
        if url.scheme not in ("http", "https") or not url.host:
            raise ValueError(f"endpoint must be an absolute http(s) URL, got {value!r}")
        return value


@dataclass
class AuthorizationRequest:
    """Credential material sent to the authorization endpoint."""
    headers: Dict[str, str] = field(default_factory=dict)
    queries: Dict[str, str] = field(default_factory=dict)

    def to_payload(self) -> Dict[str, Dict[str, str]]:
        return {"headers": dict(self.headers), "queries": dict(self.queries)}


@dataclass
class AuthorizationResult:
    """
    Result of a delegation call.
    
    status_code is 0 when no HTTP response was received.
    """
    status_code: int = 0
    headers: Dict[str, str] = field(default_factory=dict)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status_code == 200 and self.error is None


class OutcomeKind(str, Enum):
    """What the resolver decided for one rule."""
    FORWARD = "forward"
    REJECT = "reject"
    CONTINUE = "continue"


@dataclass
class Outcome:
    kind: OutcomeKind
    headers: Dict[str, str] = field(default_factory=dict)
    status_code: int = 0


class DecisionAction(str, Enum):
    """Final handling of a request."""
    FORWARD = "forward"
    REJECT = "reject"


@dataclass
class Decision:
    """
    Result of evaluating a request against the whole rule list.
    
    rule is the rule that governed the request, or None when no rule
    applied. response is set only for REJECT.
    """
    action: DecisionAction
    rule: Optional[Rule] = None
    headers: Dict[str, str] = field(default_factory=dict)
    response: Any = None

    @property
    def forwarded(self) -> bool:
        return self.action == DecisionAction.FORWARD
