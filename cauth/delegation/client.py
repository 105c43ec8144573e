import httpx
import structlog
from typing import Dict, Optional

from ..config import CAuthConfig
from ..exceptions import (
    DelegationError,
    DelegationTransportError,
    DelegationTimeoutError,
    DelegationResponseError,
)
from ..models import AuthorizationRequest, AuthorizationResult, Rule

logger = structlog.get_logger(__name__)

USER_AGENT = "cauth-gate"


def _is_header_safe(text: str, allow_empty: bool = False) -> bool:
    if not text and not allow_empty:
        return False
    if "\r" in text or "\n" in text:
        return False
    try:
        text.encode("latin-1")
    except UnicodeEncodeError:
        return False
    return True


def create_http_client(config: Optional[CAuthConfig] = None) -> httpx.AsyncClient:
    """
    Create the pooled client shared by every delegation call.
    
    The caller owns the client and must close it on shutdown.
    """
    config = config or CAuthConfig()
    return httpx.AsyncClient(
        timeout=config.delegation_timeout,
        limits=httpx.Limits(
            max_keepalive_connections=config.max_keepalive_connections,
            max_connections=config.max_connections,
        ),
        headers={
            "User-Agent": USER_AGENT,
            "Accept": "application/json",
        },
    )


class Delegator:
    """
    Calls a rule's authorization endpoint and interprets the answer.
    
    Features:
    - Shared connection pool (injected httpx.AsyncClient).
    - Explicit per-call timeout.
    - No retries: one failure is final for the rule.
    - Never raises for transport or protocol failures; they come back as
      a failed AuthorizationResult with the upstream status preserved.
    """

    def __init__(self, client: httpx.AsyncClient, timeout: float = 5.0):
        self.client = client
        self.timeout = timeout

    async def aclose(self):
        """Close the underlying HTTP client."""
        await self.client.aclose()

    def _map_exception(self, exc: Exception, endpoint: str) -> DelegationError:
        """Map httpx exceptions to delegation errors."""
        if isinstance(exc, httpx.TimeoutException):
            return DelegationTimeoutError("Request timed out", endpoint=endpoint)
        if isinstance(exc, httpx.InvalidURL):
            return DelegationTransportError(f"couldn't parse endpoint: {exc}", endpoint=endpoint)
        if isinstance(exc, (httpx.ConnectError, httpx.NetworkError)):
            return DelegationTransportError(f"Failed to connect: {exc}", endpoint=endpoint)
        return DelegationTransportError(f"error contacting endpoint: {exc}", endpoint=endpoint)

    def _decode(self, response: httpx.Response, endpoint: str) -> Dict[str, str]:
        """Decode a 200 body into the headers to inject."""
        try:
            data = response.json()
        except ValueError as e:
            raise DelegationResponseError(
                f"couldn't decode response: {e}", endpoint=endpoint, status_code=response.status_code
            )
        if not isinstance(data, dict):
            raise DelegationResponseError(
                "couldn't decode response: expected a JSON object",
                endpoint=endpoint,
                status_code=response.status_code,
            )
        headers = {}
        for name, value in data.items():
            if not isinstance(value, str):
                raise DelegationResponseError(
                    f"couldn't decode response: value for {name!r} is not a string",
                    endpoint=endpoint,
                    status_code=response.status_code,
                )
            # Header injection must not smuggle extra header lines
            if not _is_header_safe(name) or not _is_header_safe(value, allow_empty=True):
                raise DelegationResponseError(
                    f"couldn't decode response: invalid header {name!r}",
                    endpoint=endpoint,
                    status_code=response.status_code,
                )
            headers[name] = value
        return headers

    async def _call(self, endpoint: Optional[str], auth_request: AuthorizationRequest) -> Dict[str, str]:
        """Execute the POST and raise DelegationError on any failure."""
        if not endpoint:
            raise DelegationTransportError("no endpoint configured for rule")
        try:
            response = await self.client.post(
                endpoint,
                json=auth_request.to_payload(),
                timeout=self.timeout,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise self._map_exception(e, endpoint)

        if response.status_code != 200:
            raise DelegationResponseError(
                "Not authorized", endpoint=endpoint, status_code=response.status_code
            )
        return self._decode(response, endpoint)

    async def delegate(self, rule: Rule, auth_request: AuthorizationRequest) -> AuthorizationResult:
        """
        Ask the rule's endpoint whether the request is authorized.
        
        Args:
            rule: Governing rule (its endpoint is called)
            auth_request: Extracted credential material
            
        Returns:
            AuthorizationResult; ok is True only for a 200 with a valid body
        """
        try:
            headers = await self._call(rule.endpoint, auth_request)
        except DelegationError as e:
            logger.warning(
                "cauth_delegation_failed",
                rule=rule.path,
                endpoint=e.endpoint,
                status=e.status_code,
                error=e.message,
            )
            return AuthorizationResult(status_code=e.status_code, error=e.message)
        except Exception as e:
            logger.exception("cauth_delegation_unexpected_error", rule=rule.path, endpoint=rule.endpoint)
            return AuthorizationResult(status_code=0, error=str(e))

        logger.debug("cauth_delegation_succeeded", rule=rule.path, injected=sorted(headers))
        return AuthorizationResult(status_code=200, headers=headers)
