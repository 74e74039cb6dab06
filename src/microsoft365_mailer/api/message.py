"""Translation of ``Email`` objects into Microsoft Graph message resources."""

import base64
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import structlog

from microsoft365_mailer.email.models import Address, Attachment, Email, Envelope
from microsoft365_mailer.metrics import graph_attachment_size_bytes


logger = structlog.get_logger()

# Attachments of this size or more must go through an upload session
LARGE_ATTACHMENT_SIZE = 3 * 1024 * 1024

FILE_ATTACHMENT_TYPE = "#microsoft.graph.fileAttachment"


def map_recipient(address: Address) -> Dict[str, Any]:
    """Map an address to a Graph ``recipient``.

    Graph treats a missing name differently from an empty one, so the key is
    left out when the address has no display name.
    """
    email_address = {}
    if address.name:
        email_address["name"] = address.name
    email_address["address"] = address.address
    return {"emailAddress": email_address}


def attachment_filename(attachment: Attachment) -> str:
    return attachment.filename or "attachment"


def is_large_attachment(attachment: Attachment) -> bool:
    return attachment.size >= LARGE_ATTACHMENT_SIZE


@dataclass(frozen=True)
class OutboundMessage:
    """Graph ``message`` resource built for one send attempt."""

    subject: str
    html_body: str
    from_: Optional[Dict[str, Any]]
    to_recipients: Tuple[Dict[str, Any], ...]
    cc_recipients: Tuple[Dict[str, Any], ...]
    bcc_recipients: Tuple[Dict[str, Any], ...]
    reply_to: Tuple[Dict[str, Any], ...]
    attachments: Tuple[Dict[str, Any], ...] = ()

    @property
    def has_attachments(self) -> bool:
        return bool(self.attachments)

    def to_graph(self) -> Dict[str, Any]:
        """Serialize to the JSON body expected by Graph."""
        data: Dict[str, Any] = {
            "subject": self.subject,
            "body": {"contentType": "html", "content": self.html_body},
            "toRecipients": list(self.to_recipients),
            "ccRecipients": list(self.cc_recipients),
            "bccRecipients": list(self.bcc_recipients),
            "replyTo": list(self.reply_to),
        }
        if self.from_ is not None:
            data["from"] = self.from_
        if self.attachments:
            data["attachments"] = list(self.attachments)
            data["hasAttachments"] = True
        return data


@dataclass(frozen=True)
class BuiltMessage:
    message: OutboundMessage
    large_attachments: Tuple[Attachment, ...] = ()

    @property
    def has_large_attachments(self) -> bool:
        return bool(self.large_attachments)


def build_file_attachment(attachment: Attachment) -> Dict[str, Any]:
    """Build an inline ``fileAttachment`` with base64 content."""
    data: Dict[str, Any] = {
        "@odata.type": FILE_ATTACHMENT_TYPE,
        "name": attachment_filename(attachment),
        "contentType": attachment.content_type,
        "contentBytes": base64.b64encode(attachment.body).decode("ascii"),
        "isInline": attachment.inline,
    }
    if attachment.content_id:
        data["contentId"] = attachment.content_id
    return data


def build_message(email: Email, envelope: Envelope) -> BuiltMessage:
    """Build the Graph message for ``email`` delivered to ``envelope``.

    Envelope recipients are sorted into to/cc/bcc/replyTo by looking them up
    in the matching email header list. Recipients found in none of the lists
    are left out of the message.

    Attachments smaller than ``LARGE_ATTACHMENT_SIZE`` are embedded; larger
    ones are returned in ``large_attachments`` for a separate upload.
    """
    buckets: Dict[str, list] = {"to": [], "cc": [], "bcc": [], "reply_to": []}
    roles = (
        ("to", email.to),
        ("cc", email.cc),
        ("bcc", email.bcc),
        ("reply_to", email.reply_to),
    )

    for address in envelope.recipients:
        recipient = map_recipient(address)
        matched = False
        for role, addresses in roles:
            if address in addresses:
                buckets[role].append(recipient)
                matched = True
        if not matched:
            logger.warning(
                "Envelope recipient not found in message headers, skipping",
                recipient=address.address,
            )

    inline_attachments = []
    large_attachments = []
    for attachment in email.attachments:
        if is_large_attachment(attachment):
            graph_attachment_size_bytes.labels(kind="large").observe(attachment.size)
            large_attachments.append(attachment)
            continue
        graph_attachment_size_bytes.labels(kind="inline").observe(attachment.size)
        inline_attachments.append(build_file_attachment(attachment))

    sender = next(iter(email.from_), None)

    message = OutboundMessage(
        subject=email.subject,
        html_body=email.html_body,
        from_=map_recipient(sender) if sender is not None else None,
        to_recipients=tuple(buckets["to"]),
        cc_recipients=tuple(buckets["cc"]),
        bcc_recipients=tuple(buckets["bcc"]),
        reply_to=tuple(buckets["reply_to"]),
        attachments=tuple(inline_attachments),
    )

    return BuiltMessage(message=message, large_attachments=tuple(large_attachments))
