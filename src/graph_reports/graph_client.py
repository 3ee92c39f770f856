import logging
import time
from typing import Any

import requests

LOGGER = logging.getLogger(__name__)

GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"

_NEXT_LINK_KEY = "@odata.nextLink"
_REQUEST_TIMEOUT_SECONDS = 30


class GraphClientError(RuntimeError):
    """Raised when a Microsoft Graph request returns a non-success status."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


def extract_graph_error_text(response: requests.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text.strip() or "<no response body>"

    error_obj = payload.get("error") if isinstance(payload, dict) else None
    if not isinstance(error_obj, dict):
        return str(payload)

    code = error_obj.get("code", "unknown")
    message = error_obj.get("message", "No message returned")
    details = error_obj.get("details")
    if isinstance(details, list) and details:
        detail_messages: list[str] = []
        for detail in details:
            if not isinstance(detail, dict):
                continue
            detail_code = detail.get("code", "unknown")
            detail_message = detail.get("message", "")
            target = detail.get("target")
            if target:
                detail_messages.append(f"{detail_code} ({target}): {detail_message}")
            else:
                detail_messages.append(f"{detail_code}: {detail_message}")
        if detail_messages:
            return f"{code}: {message} | details: {'; '.join(detail_messages)}"
    return f"{code}: {message}"


def get_json(
    url: str,
    headers: dict[str, str],
    params: dict[str, Any] | None = None,
) -> dict[str, Any]:
    response = requests.get(
        url,
        headers=headers,
        params=params,
        timeout=_REQUEST_TIMEOUT_SECONDS,
    )
    if not response.ok:
        raise GraphClientError(
            f"GET {url} failed with HTTP {response.status_code}: "
            f"{extract_graph_error_text(response)}",
            status_code=response.status_code,
        )
    payload = response.json()
    if not isinstance(payload, dict):
        raise GraphClientError(
            f"Expected a JSON object from {url}, got {type(payload).__name__}"
        )
    return payload


def is_not_found(exc: BaseException) -> bool:
    return isinstance(exc, GraphClientError) and exc.status_code == 404


def fetch_all_pages(
    url: str,
    headers: dict[str, str],
    params: dict[str, Any] | None = None,
    delay_seconds: float = 0.0,
) -> list[dict[str, Any]]:
    """Collect every item of a Graph listing by following @odata.nextLink.

    A failed page ends the traversal; items gathered before it are returned.
    """
    items: list[dict[str, Any]] = []
    next_url: str | None = url
    next_params = params
    page = 0

    while next_url:
        if delay_seconds > 0:
            time.sleep(delay_seconds)
        try:
            payload = get_json(next_url, headers, params=next_params)
        except (GraphClientError, requests.RequestException) as exc:
            LOGGER.warning(
                "Stopping pagination after %d page(s) with %d item(s) collected: %s",
                page,
                len(items),
                exc,
            )
            return items

        page += 1
        values = payload.get("value", [])
        if isinstance(values, list):
            items.extend(values)
        else:
            LOGGER.warning("Page %d from %s has no 'value' list", page, next_url)

        next_url = payload.get(_NEXT_LINK_KEY)
        next_params = None

    LOGGER.debug("Fetched %d item(s) across %d page(s) from %s", len(items), page, url)
    return items
