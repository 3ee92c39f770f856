"""Pytest fixtures shared by the graph_reports tests.

HTTP is never reached: requests.get is replaced with a MagicMock that
returns FakeResponse objects.
"""

from typing import Any
from unittest.mock import MagicMock

import pytest


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, payload: Any = None, status_code: int = 200, text: str = ""):
        self._payload = payload
        self.status_code = status_code
        self.text = text

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload


def page(items: list[dict[str, Any]], next_link: str | None = None) -> FakeResponse:
    payload: dict[str, Any] = {"value": items}
    if next_link:
        payload["@odata.nextLink"] = next_link
    return FakeResponse(payload)


@pytest.fixture
def headers() -> dict[str, str]:
    return {"Authorization": "Bearer test-token", "Accept": "application/json"}


@pytest.fixture
def mock_get(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    """Replace requests.get as seen by graph_client."""
    mock = MagicMock()
    monkeypatch.setattr("graph_reports.graph_client.requests.get", mock)
    return mock


@pytest.fixture
def mock_sleep(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    mock = MagicMock()
    monkeypatch.setattr("graph_reports.graph_client.time.sleep", mock)
    return mock
