"""Pytest configuration and shared fixtures."""

import httpx
import pytest
import respx
from httpx import Response

GRAPH_URL = "https://graph.microsoft.com/v1.0"
USER_URL = f"{GRAPH_URL}/users/info@example.com"
AUTHORITY = "https://login.microsoftonline.com/example.onmicrosoft.com"
TOKEN_URL = f"{AUTHORITY}/oauth2/v2.0/token"
OPENID_CONFIGURATION_URL = f"{AUTHORITY}/v2.0/.well-known/openid-configuration"
UPLOAD_URL = "https://example.com/upload"


@pytest.fixture
def mock_settings():
    """Settings independent from the environment."""
    from microsoft365_mailer.config import Settings

    return Settings(
        _env_file=None,
        graph_api_url=GRAPH_URL,
        login_url="https://login.microsoftonline.com",
        api_timeout=30.0,
        upload_timeout=1000.0,
        save_to_sent_items=True,
        mailer_dsn=None,
        microsoft365_client_id=None,
        microsoft365_client_secret=None,
        microsoft365_tenant_id=None,
        microsoft365_username=None,
        log_level="DEBUG",
    )


@pytest.fixture
def graph_mock():
    """respx router with the authority and token endpoint already answering."""
    with respx.mock(assert_all_called=False) as router:
        router.get(OPENID_CONFIGURATION_URL, name="openid_configuration").mock(
            return_value=Response(
                200,
                json={
                    "issuer": f"{AUTHORITY}/v2.0",
                    "authorization_endpoint": f"{AUTHORITY}/oauth2/v2.0/authorize",
                    "token_endpoint": TOKEN_URL,
                },
            )
        )
        router.post(TOKEN_URL, name="token").mock(
            return_value=Response(
                200,
                json={"token_type": "Bearer", "expires_in": 3599, "access_token": "test-access-token"},
            )
        )
        yield router


@pytest.fixture
def http_client():
    with httpx.Client() as client:
        yield client


@pytest.fixture
def transport(mock_settings, http_client):
    from microsoft365_mailer.transport import Microsoft365ApiTransport

    return Microsoft365ApiTransport(
        client_id="client-id-xxxxxxxx",
        client_secret="client-secret-xxxxxxxx",
        tenant_id="example.onmicrosoft.com",
        username="info@example.com",
        http_client=http_client,
        settings=mock_settings,
    )


@pytest.fixture
def graph_client(transport):
    return transport.graph


@pytest.fixture
def sample_email():
    """Plain HTML email with one recipient."""
    from microsoft365_mailer.email.models import Address, Email

    return Email(
        subject="Microsoft 365 Unit Test 1 - Plain Message",
        html_body="Hello.",
        from_=[Address("from@example.com", "John From Doe")],
        to=[Address("to@example.com", "John To Doe")],
    )
