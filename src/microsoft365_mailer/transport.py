"""Mail transport delivering through the Microsoft Graph API."""

import json
from typing import Optional
from urllib.parse import quote_plus

import httpx
import structlog

from microsoft365_mailer.api.auth import TokenProvider
from microsoft365_mailer.api.errors import (
    IncompleteConfiguration,
    SendRejected,
    TransportUnreachable,
    UnexpectedResponseError,
    normalize_error,
)
from microsoft365_mailer.api.graph import GraphClient
from microsoft365_mailer.api.message import OutboundMessage, build_message
from microsoft365_mailer.api.upload import upload_large_attachment
from microsoft365_mailer.config import Settings, get_settings
from microsoft365_mailer.email.models import Attachment, Email, Envelope, SentMessage
from microsoft365_mailer.metrics import graph_api_errors_total, graph_emails_sent_total


logger = structlog.get_logger()

SCHEME = "microsoft365+api"


def _error_type(error: Exception) -> str:
    if isinstance(error, TransportUnreachable):
        return "unreachable"
    if isinstance(error, SendRejected):
        return "rejected"
    return "failed"


class Microsoft365ApiTransport:
    """Send ``Email`` objects as the ``username`` mailbox through Graph.

    Messages whose attachments are all below 3 MiB are sent with a single
    ``sendMail`` call. Otherwise a draft is created, every large attachment is
    uploaded through its own upload session, and the draft is sent.

    A failure after the draft was created leaves the draft in the mailbox;
    it is logged with its id but not deleted.

    Args:
        client_id: Application (client) id
        client_secret: Client secret
        tenant_id: Directory (tenant) id
        username: Mailbox to send as
        http_client: Client used for all HTTP calls (a new one if omitted)
        settings: Settings for URLs and timeouts (``get_settings()`` if omitted)
        graph: Preconfigured Graph client, replaces the one built from credentials

    Raises:
        IncompleteConfiguration: If a credential is empty
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        tenant_id: str,
        username: str,
        http_client: Optional[httpx.Client] = None,
        settings: Optional[Settings] = None,
        graph: Optional[GraphClient] = None,
    ) -> None:
        for name, value in (
            ("client_id", client_id),
            ("client_secret", client_secret),
            ("tenant_id", tenant_id),
            ("username", username),
        ):
            if not value:
                raise IncompleteConfiguration(f"Option {name} is not set.")

        self.client_id = client_id
        self.tenant_id = tenant_id
        self.username = username
        self.settings = settings or get_settings()
        self._owns_client = http_client is None
        self.http_client = http_client or httpx.Client()

        if graph is None:
            token_provider = TokenProvider(
                tenant_id=tenant_id,
                client_id=client_id,
                client_secret=client_secret,
                http_client=self.http_client,
                login_url=self.settings.login_url,
                scope=self.settings.graph_scope,
                timeout=self.settings.api_timeout,
            )
            graph = GraphClient(
                token_provider=token_provider,
                http_client=self.http_client,
                username=username,
                base_url=self.settings.graph_api_url,
                timeout=self.settings.api_timeout,
            )
        self.graph = graph

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        http_client: Optional[httpx.Client] = None,
    ) -> "Microsoft365ApiTransport":
        """Build a transport from ``MAILER_DSN`` or the ``MICROSOFT365_*`` settings."""
        settings = settings or get_settings()

        if settings.mailer_dsn:
            from microsoft365_mailer.dsn import Dsn, Microsoft365TransportFactory

            factory = Microsoft365TransportFactory(http_client=http_client, settings=settings)
            return factory.create(Dsn.from_string(settings.mailer_dsn))

        secret = settings.microsoft365_client_secret
        return cls(
            client_id=settings.microsoft365_client_id or "",
            client_secret=secret.get_secret_value() if secret else "",
            tenant_id=settings.microsoft365_tenant_id or "",
            username=settings.microsoft365_username or "",
            http_client=http_client,
            settings=settings,
        )

    def __str__(self) -> str:
        return (
            f"{SCHEME}://{self.client_id}@default"
            f"?tenant_id={self.tenant_id}&username={quote_plus(self.username)}"
        )

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self}>"

    def send(self, email: Email, envelope: Optional[Envelope] = None) -> SentMessage:
        """Send ``email`` and return the sent message handle.

        Raises:
            ValueError: If no envelope can be derived from the email
            TransportUnreachable: If Graph or the upload URL cannot be reached
            SendRejected: If Graph returned an error payload
            SendFailed: For any other failure
        """
        envelope = envelope or Envelope.from_email(email)

        built = build_message(email, envelope)
        path = "staged" if built.has_large_attachments else "direct"

        log = logger.bind(
            username=self.username,
            subject=email.subject,
            recipients=len(envelope.recipients),
            path=path,
        )

        provider_message_id = None
        try:
            if built.has_large_attachments:
                provider_message_id = self._send_staged(built.message, built.large_attachments)
            else:
                self._send_direct(built.message)
        except Exception as e:
            error = normalize_error(e)
            graph_emails_sent_total.labels(path=path, status="failed").inc()
            graph_api_errors_total.labels(error_type=_error_type(error)).inc()
            log.error(
                "Failed to send email",
                error=str(error),
                cause=repr(e),
                code=error.code,
            )
            raise error from e

        graph_emails_sent_total.labels(path=path, status="success").inc()

        sent = SentMessage(
            original=email,
            envelope=envelope,
            provider_message_id=provider_message_id,
        )
        log.info("Email sent", message_id=sent.message_id)
        return sent

    def _send_direct(self, message: OutboundMessage) -> None:
        self.graph.send_mail(message.to_graph(), save_to_sent_items=self.settings.save_to_sent_items)

    def _send_staged(self, message: OutboundMessage, large_attachments: tuple[Attachment, ...]) -> str:
        draft = self.graph.create_message(message.to_graph())

        message_id = draft.get("id")
        if not message_id:
            raise UnexpectedResponseError("Could not create message.", body=json.dumps(draft))

        logger.info("Draft created", message_id=message_id, large_attachments=len(large_attachments))

        try:
            for attachment in large_attachments:
                upload_large_attachment(
                    self.graph,
                    message_id,
                    attachment,
                    timeout=self.settings.upload_timeout,
                )

            self.graph.send_message(message_id)
        except Exception:
            logger.warning("Draft left in mailbox after failed send", message_id=message_id)
            raise

        return message_id

    def close(self) -> None:
        if self._owns_client:
            self.http_client.close()

    def __enter__(self) -> "Microsoft365ApiTransport":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
