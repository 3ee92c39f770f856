import logging
import os

from dotenv import load_dotenv
from msal import ConfidentialClientApplication

LOGGER = logging.getLogger(__name__)

_GRAPH_SCOPES = ["https://graph.microsoft.com/.default"]
_AUTHORITY_BASE = "https://login.microsoftonline.com"


class AuthConfigError(ValueError):
    """Raised when required auth environment variables are missing."""


def _read_required_env(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise AuthConfigError(f"Missing required environment variable: {name}")
    return value


def build_headers(access_token: str) -> dict[str, str]:
    return {
        "Authorization": f"Bearer {access_token}",
        "Accept": "application/json",
    }


def get_access_token() -> str:
    """Acquire an app-only Microsoft Graph access token using client credentials."""
    load_dotenv()

    tenant_id = _read_required_env("AZURE_TENANT_ID")
    client_id = _read_required_env("AZURE_CLIENT_ID")
    client_secret = _read_required_env("AZURE_CLIENT_SECRET")

    app = ConfidentialClientApplication(
        client_id=client_id,
        client_credential=client_secret,
        authority=f"{_AUTHORITY_BASE}/{tenant_id}",
    )

    LOGGER.info("Acquiring app-only access token for tenant %s", tenant_id)
    result = app.acquire_token_for_client(scopes=_GRAPH_SCOPES)

    access_token = result.get("access_token")
    if access_token:
        return access_token

    raise RuntimeError(
        "Failed to acquire access token "
        f"(error={result.get('error', 'unknown_error')}, "
        f"correlation_id={result.get('correlation_id', 'n/a')}): "
        f"{result.get('error_description', 'No description returned')}"
    )
