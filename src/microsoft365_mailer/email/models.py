"""Email value objects handed to the transport."""

import secrets
from dataclasses import dataclass, field
from email.utils import parseaddr
from typing import Optional, Sequence, Tuple


@dataclass(frozen=True)
class Address:
    """Email address with an optional display name."""

    address: str
    name: str = ""

    @classmethod
    def parse(cls, value: str) -> "Address":
        """Parse ``"Name <user@example.com>"`` or a bare address."""
        name, address = parseaddr(value)
        return cls(address=address, name=name)

    @property
    def domain(self) -> str:
        return self.address.rpartition("@")[2]

    def __str__(self) -> str:
        if self.name:
            return f"{self.name} <{self.address}>"
        return self.address


@dataclass(frozen=True)
class Attachment:
    """Attachment payload (raw bytes, not encoded)."""

    body: bytes
    filename: Optional[str] = None
    media_type: str = "application"
    media_subtype: str = "octet-stream"
    content_id: Optional[str] = None
    inline: bool = False

    @classmethod
    def from_content_type(
        cls,
        body: bytes,
        filename: Optional[str] = None,
        content_type: str = "application/octet-stream",
        content_id: Optional[str] = None,
        inline: bool = False,
    ) -> "Attachment":
        media_type, _, media_subtype = content_type.partition("/")
        return cls(
            body=body,
            filename=filename,
            media_type=media_type or "application",
            media_subtype=media_subtype or "octet-stream",
            content_id=content_id,
            inline=inline,
        )

    @property
    def size(self) -> int:
        return len(self.body)

    @property
    def content_type(self) -> str:
        return f"{self.media_type}/{self.media_subtype}"

    def __repr__(self) -> str:
        return (
            f"Attachment(filename={self.filename!r}, "
            f"content_type={self.content_type!r}, size={self.size})"
        )


def _as_addresses(values: Sequence) -> Tuple[Address, ...]:
    return tuple(v if isinstance(v, Address) else Address.parse(v) for v in values)


@dataclass(frozen=True)
class Email:
    """An HTML email ready to be sent.

    Address fields accept ``Address`` instances or header strings such as
    ``"John Doe <john@example.com>"``; they are normalised to tuples of
    ``Address`` so the message cannot change once built.
    """

    subject: str = ""
    html_body: str = ""
    from_: Sequence[Address] = ()
    to: Sequence[Address] = ()
    cc: Sequence[Address] = ()
    bcc: Sequence[Address] = ()
    reply_to: Sequence[Address] = ()
    attachments: Sequence[Attachment] = ()
    sender: Optional[Address] = None
    message_id: Optional[str] = None

    def __post_init__(self) -> None:
        for name in ("from_", "to", "cc", "bcc", "reply_to"):
            object.__setattr__(self, name, _as_addresses(getattr(self, name)))
        object.__setattr__(self, "attachments", tuple(self.attachments))
        if isinstance(self.sender, str):
            object.__setattr__(self, "sender", Address.parse(self.sender))


@dataclass(frozen=True)
class Envelope:
    """Delivery addressing, independent from the email headers."""

    sender: Address
    recipients: Sequence[Address]

    def __post_init__(self) -> None:
        if isinstance(self.sender, str):
            object.__setattr__(self, "sender", Address.parse(self.sender))
        object.__setattr__(self, "recipients", _as_addresses(self.recipients))
        if not self.sender.address:
            raise ValueError("An envelope must have a sender.")
        if not self.recipients:
            raise ValueError("An envelope must have at least one recipient.")

    @classmethod
    def from_email(cls, email: Email) -> "Envelope":
        """Build the default envelope from the email headers."""
        sender = email.sender or next(iter(email.from_), None)
        if sender is None:
            raise ValueError("Unable to determine the sender of the message.")

        recipients = []
        for address in (*email.to, *email.cc, *email.bcc):
            if address not in recipients:
                recipients.append(address)

        return cls(sender=sender, recipients=recipients)


@dataclass(frozen=True)
class SentMessage:
    """Handle returned for a successfully sent email."""

    original: Email
    envelope: Envelope
    message_id: str = field(default="")
    provider_message_id: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.message_id:
            object.__setattr__(self, "message_id", self.original.message_id or self._generate_id())

    def _generate_id(self) -> str:
        return f"{secrets.token_hex(16)}@{self.envelope.sender.domain}"
