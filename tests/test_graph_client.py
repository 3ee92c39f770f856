"""Tests for graph_client: error extraction, get_json and pagination."""

from unittest.mock import MagicMock

import pytest
import requests

from graph_reports.graph_client import (
    GraphClientError,
    extract_graph_error_text,
    fetch_all_pages,
    get_json,
    is_not_found,
)
from tests.conftest import FakeResponse, page

START_URL = "https://graph.microsoft.com/v1.0/things"


class TestExtractGraphErrorText:
    def test_code_and_message(self) -> None:
        response = FakeResponse({"error": {"code": "Forbidden", "message": "No access"}}, 403)
        assert extract_graph_error_text(response) == "Forbidden: No access"

    def test_details_are_appended(self) -> None:
        response = FakeResponse(
            {
                "error": {
                    "code": "BadRequest",
                    "message": "Invalid filter",
                    "details": [
                        {"code": "Syntax", "message": "bad token", "target": "$filter"},
                        {"code": "Other", "message": "second"},
                        "ignored",
                    ],
                }
            },
            400,
        )
        assert extract_graph_error_text(response) == (
            "BadRequest: Invalid filter | details: Syntax ($filter): bad token; Other: second"
        )

    def test_non_json_body_falls_back_to_text(self) -> None:
        response = FakeResponse(None, 502, text="  Bad gateway  ")
        assert extract_graph_error_text(response) == "Bad gateway"

    def test_empty_body(self) -> None:
        assert extract_graph_error_text(FakeResponse(None, 500)) == "<no response body>"


class TestGetJson:
    def test_returns_payload(self, mock_get: MagicMock, headers: dict[str, str]) -> None:
        mock_get.return_value = FakeResponse({"id": "1"})

        assert get_json(START_URL, headers, params={"$select": "id"}) == {"id": "1"}
        mock_get.assert_called_once_with(
            START_URL, headers=headers, params={"$select": "id"}, timeout=30
        )

    def test_error_status_raises_with_status_code(
        self, mock_get: MagicMock, headers: dict[str, str]
    ) -> None:
        mock_get.return_value = FakeResponse(
            {"error": {"code": "Request_ResourceNotFound", "message": "gone"}}, 404
        )

        with pytest.raises(GraphClientError) as exc_info:
            get_json(START_URL, headers)

        assert exc_info.value.status_code == 404
        assert "Request_ResourceNotFound" in str(exc_info.value)
        assert is_not_found(exc_info.value)

    def test_is_not_found_rejects_other_errors(self) -> None:
        assert not is_not_found(GraphClientError("boom", status_code=500))
        assert not is_not_found(ValueError("boom"))


class TestFetchAllPages:
    def test_concatenates_pages_in_order(
        self, mock_get: MagicMock, headers: dict[str, str]
    ) -> None:
        mock_get.side_effect = [
            page([{"id": "1"}, {"id": "2"}], next_link=f"{START_URL}?$skiptoken=a"),
            page([{"id": "3"}], next_link=f"{START_URL}?$skiptoken=b"),
            page([{"id": "4"}]),
        ]

        items = fetch_all_pages(START_URL, headers)

        assert [item["id"] for item in items] == ["1", "2", "3", "4"]
        assert mock_get.call_count == 3

    def test_stops_on_page_without_next_link(
        self, mock_get: MagicMock, headers: dict[str, str]
    ) -> None:
        mock_get.side_effect = [page([{"id": "1"}]), page([{"id": "never"}])]

        assert fetch_all_pages(START_URL, headers) == [{"id": "1"}]
        assert mock_get.call_count == 1

    def test_params_only_sent_with_first_request(
        self, mock_get: MagicMock, headers: dict[str, str]
    ) -> None:
        next_link = f"{START_URL}?$top=5&$skiptoken=x"
        mock_get.side_effect = [page([], next_link=next_link), page([])]

        fetch_all_pages(START_URL, headers, params={"$top": 5})

        first, second = mock_get.call_args_list
        assert first.kwargs["params"] == {"$top": 5}
        assert second.args[0] == next_link
        assert second.kwargs["params"] is None

    def test_http_failure_returns_partial_results(
        self, mock_get: MagicMock, headers: dict[str, str]
    ) -> None:
        mock_get.side_effect = [
            page([{"id": "1"}], next_link=f"{START_URL}?$skiptoken=a"),
            FakeResponse({"error": {"code": "TooManyRequests", "message": "slow"}}, 429),
        ]

        assert fetch_all_pages(START_URL, headers) == [{"id": "1"}]

    def test_transport_failure_returns_partial_results(
        self, mock_get: MagicMock, headers: dict[str, str]
    ) -> None:
        mock_get.side_effect = [
            page([{"id": "1"}], next_link=f"{START_URL}?$skiptoken=a"),
            requests.ConnectionError("reset"),
        ]

        assert fetch_all_pages(START_URL, headers) == [{"id": "1"}]

    def test_first_page_failure_returns_empty(
        self, mock_get: MagicMock, headers: dict[str, str]
    ) -> None:
        mock_get.return_value = FakeResponse(None, 500)

        assert fetch_all_pages(START_URL, headers) == []

    def test_delay_sleeps_before_each_request(
        self, mock_get: MagicMock, mock_sleep: MagicMock, headers: dict[str, str]
    ) -> None:
        mock_get.side_effect = [page([], next_link=f"{START_URL}?p=2"), page([])]

        fetch_all_pages(START_URL, headers, delay_seconds=0.5)

        assert mock_sleep.call_count == 2
        mock_sleep.assert_called_with(0.5)

    def test_no_delay_by_default(
        self, mock_get: MagicMock, mock_sleep: MagicMock, headers: dict[str, str]
    ) -> None:
        mock_get.return_value = page([])

        fetch_all_pages(START_URL, headers)

        mock_sleep.assert_not_called()
