"""Mailer error classes and failure translation."""

from typing import Any, Optional

import httpx


class MailerError(Exception):
    """Base class for mailer errors."""

    def __init__(self, message: str, code: int = 0) -> None:
        super().__init__(message)
        self.code = code


class IncompleteConfiguration(MailerError):
    """A required credential or option is missing."""

    pass


class UnsupportedScheme(MailerError):
    """Connection string scheme is not handled by this mailer."""

    def __init__(self, scheme: str, provider: str, supported: list[str]) -> None:
        schemes = ", ".join(f'"{s}"' for s in supported)
        super().__init__(
            f'The "{scheme}" scheme is not supported; '
            f'supported schemes for mailer "{provider}" are: {schemes}.'
        )
        self.scheme = scheme
        self.supported = supported


class SendError(MailerError):
    """Sending a message failed."""

    pass


class TransportUnreachable(SendError):
    """Remote server could not be reached."""

    pass


class SendRejected(SendError):
    """Microsoft Graph rejected the request."""

    def __init__(self, message: str, code: int = 0, error_code: Optional[str] = None) -> None:
        super().__init__(message, code)
        self.error_code = error_code


class SendFailed(SendError):
    """Any other failure during the send sequence."""

    pass


class GraphApiError(Exception):
    """Structured error payload returned by Microsoft Graph or the token endpoint."""

    def __init__(
        self,
        status_code: int,
        message: str,
        code: Optional[str] = None,
        body: str = "",
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.code = code
        self.body = body

    @classmethod
    def from_response(cls, response: httpx.Response) -> "GraphApiError":
        """Build from an error response.

        Graph answers ``{"error": {"code": ..., "message": ...}}`` while the
        token endpoint answers ``{"error": ..., "error_description": ...}``.
        """
        code = None
        message = ""
        try:
            data = response.json()
        except ValueError:
            data = None

        if isinstance(data, dict):
            error = data.get("error")
            if isinstance(error, dict):
                code = error.get("code")
                message = error.get("message") or ""
            elif isinstance(error, str):
                code = error
                message = data.get("error_description") or ""

        if not message:
            message = f"HTTP {response.status_code}"

        return cls(response.status_code, message, code=code, body=response.text)


class UnexpectedResponseError(Exception):
    """Successful response missing a field the protocol requires."""

    def __init__(self, message: str, body: str = "") -> None:
        super().__init__(message)
        self.body = body


def _int_code(error: BaseException) -> int:
    code: Any = getattr(error, "code", 0)
    try:
        return int(code)
    except (TypeError, ValueError):
        return 0


def normalize_error(error: BaseException) -> SendError:
    """Map a low-level failure raised while sending to a ``SendError``.

    Callers raise the result ``from`` the original so the cause is kept.
    """
    if isinstance(error, SendError):
        return error

    if isinstance(error, httpx.TransportError):
        return TransportUnreachable("Could not reach the remote server.")

    if isinstance(error, GraphApiError):
        return SendRejected(
            f"Unable to send an email: {error.message}",
            code=error.status_code,
            error_code=error.code,
        )

    return SendFailed("Unable to send an email.", code=_int_code(error))
