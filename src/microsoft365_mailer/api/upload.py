"""Chunked upload of large attachments through Graph upload sessions."""

import json
import math
from typing import Iterator, NamedTuple

import httpx
import structlog

from microsoft365_mailer.api.errors import GraphApiError, UnexpectedResponseError
from microsoft365_mailer.api.graph import GraphClient
from microsoft365_mailer.api.message import attachment_filename, is_large_attachment
from microsoft365_mailer.email.models import Attachment
from microsoft365_mailer.metrics import graph_upload_bytes_total, graph_upload_chunks_total


logger = structlog.get_logger()

# Graph requires fragments to be multiples of 320 KiB; 4 MiB is one
FRAGMENT_SIZE = 4 * 1024 * 1024


class Chunk(NamedTuple):
    """Inclusive byte range ``start``..``end`` of a ``total``-byte payload."""

    start: int
    end: int
    total: int

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    @property
    def content_range(self) -> str:
        return f"bytes {self.start}-{self.end}/{self.total}"


def iter_chunks(total_size: int, fragment_size: int = FRAGMENT_SIZE) -> Iterator[Chunk]:
    """Yield the ranges covering ``total_size`` bytes in increasing order."""
    num_fragments = math.ceil(total_size / fragment_size)
    bytes_remaining = total_size

    for i in range(num_fragments):
        start = i * fragment_size
        end = start + fragment_size - 1
        num_bytes = fragment_size
        if bytes_remaining < fragment_size:
            num_bytes = bytes_remaining
            end = total_size - 1

        yield Chunk(start, end, total_size)
        bytes_remaining -= num_bytes


def upload_chunks(
    http_client: httpx.Client,
    upload_url: str,
    content: bytes,
    timeout: float = 1000.0,
    fragment_size: int = FRAGMENT_SIZE,
) -> int:
    """PUT ``content`` to ``upload_url`` one fragment at a time.

    The upload URL is pre-authenticated, so no Authorization header is sent.
    The first failed fragment aborts the upload; there is no retry.

    Returns:
        Number of fragments uploaded
    """
    uploaded = 0
    for chunk in iter_chunks(len(content), fragment_size):
        response = http_client.put(
            upload_url,
            content=content[chunk.start:chunk.end + 1],
            headers={
                "Content-Length": str(chunk.length),
                "Content-Range": chunk.content_range,
            },
            timeout=timeout,
        )
        if not response.is_success:
            error = GraphApiError.from_response(response)
            logger.warning(
                "Attachment chunk upload failed",
                content_range=chunk.content_range,
                status_code=response.status_code,
                error_code=error.code,
            )
            raise error

        graph_upload_chunks_total.inc()
        graph_upload_bytes_total.inc(chunk.length)
        uploaded += 1

        logger.debug("Attachment chunk uploaded", content_range=chunk.content_range)

    return uploaded


def upload_large_attachment(
    graph: GraphClient,
    message_id: str,
    attachment: Attachment,
    timeout: float = 1000.0,
) -> None:
    """Attach ``attachment`` to draft ``message_id`` using an upload session.

    Attachments below the large attachment size are embedded in the message
    itself and are skipped here.

    Raises:
        UnexpectedResponseError: If Graph returns no upload URL
        GraphApiError: If Graph rejects the session or a fragment
        httpx.TransportError: On network failure
    """
    if not is_large_attachment(attachment):
        return

    name = attachment_filename(attachment)
    size = attachment.size

    session = graph.create_upload_session(message_id, name, size)
    upload_url = session.get("uploadUrl")
    if not upload_url:
        raise UnexpectedResponseError("Could not create an upload session.", body=json.dumps(session))

    logger.info(
        "Uploading large attachment",
        message_id=message_id,
        filename=name,
        size=size,
        fragments=math.ceil(size / FRAGMENT_SIZE),
    )

    upload_chunks(graph.http_client, upload_url, attachment.body, timeout=timeout)
