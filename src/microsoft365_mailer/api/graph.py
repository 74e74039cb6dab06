"""Microsoft Graph mail endpoints."""

import time
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx
import structlog

from microsoft365_mailer.api.auth import TokenProvider
from microsoft365_mailer.api.errors import GraphApiError
from microsoft365_mailer.metrics import graph_api_latency_seconds


logger = structlog.get_logger()


class GraphClient:
    """Authenticated access to the ``/users/{username}`` mail endpoints.

    Every call blocks until Graph answers or ``timeout`` expires. Non-2xx
    answers raise ``GraphApiError``; network failures propagate as
    ``httpx.TransportError``.
    """

    def __init__(
        self,
        token_provider: TokenProvider,
        http_client: httpx.Client,
        username: str,
        base_url: str = "https://graph.microsoft.com/v1.0",
        timeout: float = 30.0,
    ) -> None:
        self.token_provider = token_provider
        self.http_client = http_client
        self.username = username
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    @property
    def user_url(self) -> str:
        return f"{self.base_url}/users/{quote(self.username, safe='@')}"

    def send_mail(self, message: Dict[str, Any], save_to_sent_items: bool = True) -> None:
        """POST /users/{username}/sendMail (202 Accepted, no content)."""
        self._request(
            "send_mail",
            "POST",
            f"{self.user_url}/sendMail",
            json={"message": message, "saveToSentItems": save_to_sent_items},
        )

    def create_message(self, message: Dict[str, Any]) -> Dict[str, Any]:
        """POST /users/{username}/messages, returns the created draft."""
        response = self._request("create_message", "POST", f"{self.user_url}/messages", json=message)
        return response.json()

    def create_upload_session(self, message_id: str, name: str, size: int) -> Dict[str, Any]:
        """POST .../messages/{id}/attachments/createUploadSession."""
        response = self._request(
            "create_upload_session",
            "POST",
            f"{self.user_url}/messages/{quote(message_id, safe='')}/attachments/createUploadSession",
            json={
                "AttachmentItem": {
                    "attachmentType": "file",
                    "name": name,
                    "size": size,
                },
            },
        )
        return response.json()

    def send_message(self, message_id: str) -> None:
        """POST .../messages/{id}/send with no body."""
        self._request(
            "send_message",
            "POST",
            f"{self.user_url}/messages/{quote(message_id, safe='')}/send",
        )

    def _request(
        self,
        endpoint: str,
        method: str,
        url: str,
        json: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        headers = {"Authorization": f"Bearer {self.token_provider.get_token()}"}

        logger.debug("Calling Microsoft Graph", endpoint=endpoint, method=method, url=url)

        started = time.perf_counter()
        try:
            response = self.http_client.request(
                method,
                url,
                json=json,
                headers=headers,
                timeout=self.timeout,
            )
        except httpx.TransportError:
            graph_api_latency_seconds.labels(endpoint=endpoint, status="error").observe(
                time.perf_counter() - started
            )
            raise

        status = "success" if response.is_success else "error"
        graph_api_latency_seconds.labels(endpoint=endpoint, status=status).observe(
            time.perf_counter() - started
        )

        if not response.is_success:
            error = GraphApiError.from_response(response)
            logger.warning(
                "Microsoft Graph returned an error",
                endpoint=endpoint,
                status_code=response.status_code,
                error_code=error.code,
                error=error.message,
            )
            if response.status_code == 401:
                self.token_provider.invalidate()
            raise error

        return response
