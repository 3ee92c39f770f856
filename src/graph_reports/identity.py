import enum
import logging
import time
from collections import Counter
from dataclasses import dataclass

import requests

from graph_reports.graph_client import (
    GRAPH_BASE_URL,
    GraphClientError,
    get_json,
    is_not_found,
)

LOGGER = logging.getLogger(__name__)

FORMER_MEMBER = "Former Member"


class ResolutionStatus(enum.Enum):
    RESOLVED = "resolved"
    NOT_FOUND = "not-found"
    ERROR = "error"


@dataclass(frozen=True)
class CacheEntry:
    display_name: str
    status: ResolutionStatus


class UserResolver:
    """Resolve user ids to display names, querying Graph at most once per id.

    Ids that cannot be looked up, whether deleted or failing for another
    reason, resolve to FORMER_MEMBER for the rest of the run.
    """

    def __init__(
        self,
        headers: dict[str, str],
        delay_seconds: float = 0.0,
    ):
        self.headers = headers
        self.delay_seconds = delay_seconds
        self.lookups = 0
        self._cache: dict[str, CacheEntry] = {}

    def entry(self, user_id: str) -> CacheEntry | None:
        return self._cache.get(user_id)

    def resolve(self, user_id: str) -> str:
        cached = self._cache.get(user_id)
        if cached is None:
            cached = self._lookup(user_id)
            self._cache[user_id] = cached
        return cached.display_name

    def resolve_many(self, user_ids: list[str]) -> list[str]:
        return [self.resolve(user_id) for user_id in user_ids]

    def status_counts(self) -> Counter[ResolutionStatus]:
        return Counter(entry.status for entry in self._cache.values())

    def _lookup(self, user_id: str) -> CacheEntry:
        if self.delay_seconds > 0:
            time.sleep(self.delay_seconds)

        self.lookups += 1
        url = f"{GRAPH_BASE_URL}/users/{user_id}"
        try:
            user = get_json(
                url,
                self.headers,
                params={"$select": "id,displayName,userPrincipalName"},
            )
        except (GraphClientError, requests.RequestException) as exc:
            if is_not_found(exc):
                LOGGER.info("User %s no longer exists; using '%s'", user_id, FORMER_MEMBER)
                return CacheEntry(FORMER_MEMBER, ResolutionStatus.NOT_FOUND)
            LOGGER.warning("Failed to look up user %s: %s", user_id, exc)
            return CacheEntry(FORMER_MEMBER, ResolutionStatus.ERROR)

        name = user.get("displayName") or user.get("userPrincipalName") or FORMER_MEMBER
        return CacheEntry(str(name), ResolutionStatus.RESOLVED)
