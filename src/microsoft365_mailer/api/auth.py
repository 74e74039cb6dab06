"""Microsoft identity platform authentication (client credentials grant)."""

import threading
import time
from typing import Any, Dict, Optional

import httpx
import msal
import structlog

from microsoft365_mailer.api.errors import GraphApiError, UnexpectedResponseError
from microsoft365_mailer.metrics import graph_api_latency_seconds


logger = structlog.get_logger()

# OAuth2 error codes that mean the application itself was refused
UNAUTHORIZED_ERRORS = frozenset({"invalid_client", "unauthorized_client"})


class TokenProvider:
    """Acquire application access tokens for Microsoft Graph through MSAL.

    Token requests, caching and refresh are handled by
    ``msal.ConfidentialClientApplication``. Its HTTP traffic goes through the
    shared ``httpx.Client``. The MSAL application is built on first use, since
    building it fetches the tenant's OpenID configuration.

    Args:
        tenant_id: Directory (tenant) id or domain
        client_id: Application (client) id
        client_secret: Client secret
        http_client: Client used for authority discovery and token requests
        login_url: Authority host
        scope: Requested scope
        timeout: Request timeout in seconds
    """

    def __init__(
        self,
        tenant_id: str,
        client_id: str,
        client_secret: str,
        http_client: httpx.Client,
        login_url: str = "https://login.microsoftonline.com",
        scope: str = "https://graph.microsoft.com/.default",
        timeout: float = 30.0,
    ) -> None:
        self.tenant_id = tenant_id
        self.client_id = client_id
        self._client_secret = client_secret
        self._http_client = http_client
        self.authority = f"{login_url.rstrip('/')}/{tenant_id}"
        self.scope = scope
        self.timeout = timeout
        self._lock = threading.Lock()
        self._app: Optional[msal.ConfidentialClientApplication] = None

    def get_token(self) -> str:
        """Return a valid access token, served from the MSAL cache when possible.

        Raises:
            GraphApiError: If the token endpoint rejects the credentials
            UnexpectedResponseError: If the result has no access_token
            httpx.TransportError: If the authority cannot be reached
        """
        started = time.perf_counter()
        result = self._application().acquire_token_for_client(scopes=[self.scope])
        token = result.get("access_token")

        if result.get("token_source") != "cache":
            status = "success" if token else "error"
            graph_api_latency_seconds.labels(endpoint="token", status=status).observe(
                time.perf_counter() - started
            )

        if "error" in result:
            error = token_error(result)
            logger.warning(
                "Token request rejected",
                tenant_id=self.tenant_id,
                status_code=error.status_code,
                error_code=error.code,
            )
            raise error

        if not token:
            logger.error("Token endpoint returned no access_token", tenant_id=self.tenant_id)
            raise UnexpectedResponseError(
                "Invalid token response: missing access_token", body=repr(sorted(result))
            )

        return token

    def invalidate(self) -> None:
        """Forget cached tokens so the next call requests a new one."""
        with self._lock:
            self._app = None

    def _application(self) -> msal.ConfidentialClientApplication:
        with self._lock:
            if self._app is None:
                logger.debug(
                    "Creating MSAL application",
                    authority=self.authority,
                    client_id=self.client_id,
                )
                self._app = msal.ConfidentialClientApplication(
                    self.client_id,
                    client_credential=self._client_secret,
                    authority=self.authority,
                    http_client=self._http_client,
                    instance_discovery=False,
                    timeout=self.timeout,
                )
            return self._app


def token_error(result: Dict[str, Any]) -> GraphApiError:
    """Build a ``GraphApiError`` from an MSAL error result.

    MSAL returns the token endpoint's ``error``/``error_description`` payload
    without the HTTP status, so the status is derived from the error code.
    """
    code = result.get("error")
    message = result.get("error_description") or str(code)
    status_code = 401 if code in UNAUTHORIZED_ERRORS else 400
    return GraphApiError(status_code, message, code=code, body=repr(result))
