"""Command line entry point for the Microsoft 365 mailer."""

import mimetypes
import sys
from pathlib import Path
from typing import Optional

import click
import structlog

from microsoft365_mailer.api.errors import MailerError
from microsoft365_mailer.config import get_settings
from microsoft365_mailer.email.models import Address, Attachment, Email
from microsoft365_mailer.logging import setup_logging
from microsoft365_mailer.transport import Microsoft365ApiTransport


logger = structlog.get_logger()


def _load_attachment(path: Path) -> Attachment:
    content_type, _ = mimetypes.guess_type(path.name)
    return Attachment.from_content_type(
        path.read_bytes(),
        filename=path.name,
        content_type=content_type or "application/octet-stream",
    )


@click.group()
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Send email through Microsoft Graph."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    ctx.obj = settings


@cli.command()
@click.pass_obj
def describe(settings) -> None:
    """Print the transport connection string (without secrets)."""
    try:
        transport = Microsoft365ApiTransport.from_settings(settings)
    except (MailerError, ValueError) as e:
        raise click.ClickException(str(e))
    with transport:
        click.echo(str(transport))


@cli.command()
@click.option("--from", "from_", required=True, help="Sender, e.g. 'Jane <jane@example.com>'.")
@click.option("--to", multiple=True, required=True, help="Recipient (repeatable).")
@click.option("--cc", multiple=True, help="Carbon copy recipient (repeatable).")
@click.option("--bcc", multiple=True, help="Blind carbon copy recipient (repeatable).")
@click.option("--reply-to", multiple=True, help="Reply-To address (repeatable).")
@click.option("--subject", default="", help="Subject line.")
@click.option("--html", "html_body", default="", help="HTML body.")
@click.option("--html-file", type=click.Path(exists=True, dir_okay=False, path_type=Path), help="Read the HTML body from a file.")
@click.option(
    "--attach",
    "attachments",
    multiple=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="File to attach (repeatable).",
)
@click.pass_obj
def send(
    settings,
    from_: str,
    to: tuple[str, ...],
    cc: tuple[str, ...],
    bcc: tuple[str, ...],
    reply_to: tuple[str, ...],
    subject: str,
    html_body: str,
    html_file: Optional[Path],
    attachments: tuple[Path, ...],
) -> None:
    """Send one HTML email."""
    if html_file is not None:
        html_body = html_file.read_text(encoding="utf-8")

    email = Email(
        subject=subject,
        html_body=html_body,
        from_=[Address.parse(from_)],
        to=[Address.parse(a) for a in to],
        cc=[Address.parse(a) for a in cc],
        bcc=[Address.parse(a) for a in bcc],
        reply_to=[Address.parse(a) for a in reply_to],
        attachments=[_load_attachment(p) for p in attachments],
    )

    try:
        transport = Microsoft365ApiTransport.from_settings(settings)
        with transport:
            sent = transport.send(email)
    except (MailerError, ValueError) as e:
        raise click.ClickException(str(e))

    click.echo(sent.message_id)


def run() -> None:
    """Run the command line interface."""
    try:
        cli()
    except Exception as e:
        logger.error("Fatal error", error=str(e), exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    run()
