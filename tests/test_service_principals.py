"""Tests for service principal flattening."""

from datetime import UTC, datetime
from unittest.mock import MagicMock

import pytest

from graph_reports.service_principals import (
    fetch_service_principals,
    flatten_service_principal,
)

NOW = datetime(2026, 10, 19, tzinfo=UTC)

PRINCIPAL = {
    "id": "sp-1",
    "appId": "app-1",
    "displayName": "Payroll Connector",
    "servicePrincipalType": "Application",
    "accountEnabled": True,
    "appRoleAssignmentRequired": False,
    "signInAudience": "AzureADMyOrg",
    "appOwnerOrganizationId": "tenant-1",
    "replyUrls": ["https://payroll.example.com/auth"],
    "tags": ["WindowsAzureActiveDirectoryIntegratedApp"],
    "keyCredentials": [
        {"displayName": "cert", "keyId": "k1", "endDateTime": "2025-01-01T00:00:00Z"},
    ],
    "passwordCredentials": [
        {"displayName": "secret", "keyId": "p1", "endDateTime": "2027-01-01T00:00:00.0000000Z"},
        {"displayName": "odd", "keyId": "p2", "endDateTime": "not-a-date"},
    ],
}


class TestFlattenServicePrincipal:
    def test_configuration_fields(self) -> None:
        record = flatten_service_principal(PRINCIPAL, now=NOW)

        assert record["appId"] == "app-1"
        assert record["signInAudience"] == "AzureADMyOrg"
        assert record["replyUrls"] == ["https://payroll.example.com/auth"]

    def test_credential_expiry(self) -> None:
        record = flatten_service_principal(PRINCIPAL, now=NOW)

        assert record["keyCredentials"][0]["expired"] is True
        assert [c["expired"] for c in record["passwordCredentials"]] == [False, False]
        assert record["expiredCredentialCount"] == 1

    def test_bare_record(self) -> None:
        record = flatten_service_principal({"id": "sp-2"}, now=NOW)

        assert record["keyCredentials"] == []
        assert record["tags"] == []
        assert record["expiredCredentialCount"] == 0


class TestFetchServicePrincipals:
    def test_selects_configuration_fields(
        self, monkeypatch: pytest.MonkeyPatch, headers: dict[str, str]
    ) -> None:
        fetch = MagicMock(return_value=[PRINCIPAL])
        monkeypatch.setattr("graph_reports.service_principals.fetch_all_pages", fetch)

        assert fetch_service_principals(headers) == [PRINCIPAL]
        select = fetch.call_args.kwargs["params"]["$select"]
        assert "passwordCredentials" in select.split(",")
