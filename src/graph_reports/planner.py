import logging
import time
from typing import Any

from graph_reports.graph_client import GRAPH_BASE_URL, fetch_all_pages, get_json
from graph_reports.identity import UserResolver
from graph_reports.sanitizer import sanitize_comment

LOGGER = logging.getLogger(__name__)

_PRIORITY_LABELS = (
    (1, "Urgent"),
    (4, "Important"),
    (7, "Medium"),
    (10, "Low"),
)


def status_label(percent_complete: int | None) -> str:
    if not percent_complete:
        return "Not started"
    if percent_complete >= 100:
        return "Completed"
    return "In progress"


def priority_label(priority: int | None) -> str:
    if priority is None:
        return ""
    for upper_bound, label in _PRIORITY_LABELS:
        if priority <= upper_bound:
            return label
    return "Low"


def _user_id(identity_set: dict[str, Any] | None) -> str | None:
    if not isinstance(identity_set, dict):
        return None
    user = identity_set.get("user")
    if isinstance(user, dict) and user.get("id"):
        return str(user["id"])
    return None


def list_group_plans(
    group_id: str,
    headers: dict[str, str],
    delay_seconds: float = 0.0,
) -> list[dict[str, Any]]:
    return fetch_all_pages(
        f"{GRAPH_BASE_URL}/groups/{group_id}/planner/plans",
        headers,
        delay_seconds=delay_seconds,
    )


def get_plan(plan_id: str, headers: dict[str, str], delay_seconds: float = 0.0) -> dict[str, Any]:
    if delay_seconds > 0:
        time.sleep(delay_seconds)
    return get_json(f"{GRAPH_BASE_URL}/planner/plans/{plan_id}", headers)


def list_plan_tasks(
    plan_id: str,
    headers: dict[str, str],
    delay_seconds: float = 0.0,
) -> list[dict[str, Any]]:
    return fetch_all_pages(
        f"{GRAPH_BASE_URL}/planner/plans/{plan_id}/tasks",
        headers,
        delay_seconds=delay_seconds,
    )


def list_plan_buckets(
    plan_id: str,
    headers: dict[str, str],
    delay_seconds: float = 0.0,
) -> list[dict[str, Any]]:
    return fetch_all_pages(
        f"{GRAPH_BASE_URL}/planner/plans/{plan_id}/buckets",
        headers,
        delay_seconds=delay_seconds,
    )


def list_thread_posts(
    group_id: str,
    thread_id: str,
    headers: dict[str, str],
    delay_seconds: float = 0.0,
) -> list[dict[str, Any]]:
    return fetch_all_pages(
        f"{GRAPH_BASE_URL}/groups/{group_id}/threads/{thread_id}/posts",
        headers,
        delay_seconds=delay_seconds,
    )


def plan_group_id(plan: dict[str, Any]) -> str | None:
    container = plan.get("container")
    if isinstance(container, dict) and container.get("type") == "group":
        return container.get("containerId")
    return plan.get("owner")


def build_comment(post: dict[str, Any]) -> dict[str, str]:
    sender = post.get("from") or {}
    email_address = sender.get("emailAddress") or {}
    body = post.get("body") or {}
    return {
        "author": str(email_address.get("name") or email_address.get("address") or ""),
        "createdDateTime": str(post.get("createdDateTime") or ""),
        "text": sanitize_comment(body.get("content")),
    }


class PlannerExporter:
    """Flatten Planner plans into one self-contained record per task."""

    def __init__(
        self,
        headers: dict[str, str],
        resolver: UserResolver,
        delay_seconds: float = 0.0,
    ):
        self.headers = headers
        self.resolver = resolver
        self.delay_seconds = delay_seconds

    def _name_or_empty(self, user_id: str | None) -> str:
        return self.resolver.resolve(user_id) if user_id else ""

    def fetch_comments(self, group_id: str | None, thread_id: str | None) -> list[dict[str, str]]:
        if not group_id or not thread_id:
            return []
        posts = list_thread_posts(
            group_id,
            thread_id,
            self.headers,
            delay_seconds=self.delay_seconds,
        )
        posts.sort(key=lambda post: str(post.get("createdDateTime") or ""))
        return [build_comment(post) for post in posts]

    def build_task_record(
        self,
        plan: dict[str, Any],
        task: dict[str, Any],
        bucket_names: dict[str, str],
    ) -> dict[str, Any]:
        assignments = task.get("assignments") or {}
        percent_complete = task.get("percentComplete")
        return {
            "planId": plan.get("id"),
            "planTitle": plan.get("title", ""),
            "taskId": task.get("id"),
            "title": task.get("title", ""),
            "bucket": bucket_names.get(str(task.get("bucketId")), ""),
            "status": status_label(percent_complete),
            "percentComplete": percent_complete,
            "priority": priority_label(task.get("priority")),
            "startDateTime": task.get("startDateTime"),
            "dueDateTime": task.get("dueDateTime"),
            "createdDateTime": task.get("createdDateTime"),
            "completedDateTime": task.get("completedDateTime"),
            "createdBy": self._name_or_empty(_user_id(task.get("createdBy"))),
            "completedBy": self._name_or_empty(_user_id(task.get("completedBy"))),
            "assignees": self.resolver.resolve_many(sorted(assignments)),
            "comments": self.fetch_comments(
                plan_group_id(plan),
                task.get("conversationThreadId"),
            ),
        }

    def export_plan(self, plan: dict[str, Any]) -> list[dict[str, Any]]:
        plan_id = str(plan["id"])
        buckets = list_plan_buckets(plan_id, self.headers, delay_seconds=self.delay_seconds)
        bucket_names = {str(bucket.get("id")): str(bucket.get("name", "")) for bucket in buckets}
        tasks = list_plan_tasks(plan_id, self.headers, delay_seconds=self.delay_seconds)

        LOGGER.info(
            "Exporting plan '%s' (%s): %d task(s), %d bucket(s)",
            plan.get("title", ""),
            plan_id,
            len(tasks),
            len(bucket_names),
        )
        return [self.build_task_record(plan, task, bucket_names) for task in tasks]

    def export_plans(self, plans: list[dict[str, Any]]) -> list[dict[str, Any]]:
        records: list[dict[str, Any]] = []
        for plan in plans:
            try:
                records.extend(self.export_plan(plan))
            except Exception:
                LOGGER.exception("Failed to export plan %s; continuing", plan.get("id"))
        LOGGER.info("Exported %d task record(s) from %d plan(s)", len(records), len(plans))
        return records
