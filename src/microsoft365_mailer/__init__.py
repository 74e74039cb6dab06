"""Microsoft 365 Mailer.

Sends email through the Microsoft Graph API, uploading large attachments in chunks.
"""

from microsoft365_mailer.api.errors import (
    IncompleteConfiguration,
    MailerError,
    SendError,
    SendFailed,
    SendRejected,
    TransportUnreachable,
    UnsupportedScheme,
)
from microsoft365_mailer.dsn import Dsn, Microsoft365TransportFactory
from microsoft365_mailer.email.models import Address, Attachment, Email, Envelope, SentMessage
from microsoft365_mailer.transport import Microsoft365ApiTransport

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "Address",
    "Attachment",
    "Dsn",
    "Email",
    "Envelope",
    "IncompleteConfiguration",
    "MailerError",
    "Microsoft365ApiTransport",
    "Microsoft365TransportFactory",
    "SendError",
    "SendFailed",
    "SendRejected",
    "SentMessage",
    "TransportUnreachable",
    "UnsupportedScheme",
]
