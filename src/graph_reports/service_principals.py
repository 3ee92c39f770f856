import logging
from datetime import UTC, datetime
from typing import Any

from graph_reports.graph_client import GRAPH_BASE_URL, fetch_all_pages

LOGGER = logging.getLogger(__name__)

_SELECT_FIELDS = (
    "id",
    "appId",
    "displayName",
    "servicePrincipalType",
    "accountEnabled",
    "appRoleAssignmentRequired",
    "signInAudience",
    "appOwnerOrganizationId",
    "replyUrls",
    "tags",
    "keyCredentials",
    "passwordCredentials",
)


def fetch_service_principals(
    headers: dict[str, str],
    delay_seconds: float = 0.0,
) -> list[dict[str, Any]]:
    LOGGER.info("Fetching service principals")
    return fetch_all_pages(
        f"{GRAPH_BASE_URL}/servicePrincipals",
        headers,
        params={"$select": ",".join(_SELECT_FIELDS), "$top": 999},
        delay_seconds=delay_seconds,
    )


def _parse_graph_datetime(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        LOGGER.debug("Unparseable credential end date: %s", value)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _summarize_credentials(
    credentials: list[dict[str, Any]] | None,
    now: datetime,
) -> list[dict[str, Any]]:
    summaries: list[dict[str, Any]] = []
    for credential in credentials or []:
        end = _parse_graph_datetime(credential.get("endDateTime"))
        summaries.append(
            {
                "displayName": credential.get("displayName"),
                "keyId": credential.get("keyId"),
                "endDateTime": credential.get("endDateTime"),
                "expired": end is not None and end <= now,
            }
        )
    return summaries


def flatten_service_principal(
    record: dict[str, Any],
    now: datetime | None = None,
) -> dict[str, Any]:
    current = now or datetime.now(UTC)
    key_credentials = _summarize_credentials(record.get("keyCredentials"), current)
    password_credentials = _summarize_credentials(record.get("passwordCredentials"), current)
    expired = sum(
        1 for credential in key_credentials + password_credentials if credential["expired"]
    )

    return {
        "id": record.get("id"),
        "appId": record.get("appId"),
        "displayName": record.get("displayName"),
        "servicePrincipalType": record.get("servicePrincipalType"),
        "accountEnabled": record.get("accountEnabled"),
        "appRoleAssignmentRequired": record.get("appRoleAssignmentRequired"),
        "signInAudience": record.get("signInAudience"),
        "appOwnerOrganizationId": record.get("appOwnerOrganizationId"),
        "replyUrls": list(record.get("replyUrls") or []),
        "tags": list(record.get("tags") or []),
        "keyCredentials": key_credentials,
        "passwordCredentials": password_credentials,
        "expiredCredentialCount": expired,
    }
