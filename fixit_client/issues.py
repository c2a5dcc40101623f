"""Issue-list container holding the signed-in user's and the admin's views."""

import logging
import mimetypes
import time
from dataclasses import dataclass
from pathlib import Path

from fixit_client.api import ActionResult, ApiClient, ApiError
from fixit_client.mapping import Issue, normalize_issue, status_to_server

logger = logging.getLogger(__name__)


@dataclass
class IssueFilters:
    status: str = ""
    category: str = ""


def _query_params(status: str, category: str) -> dict:
    params = {}
    if status:
        params["status"] = status_to_server(status)
    if category:
        params["category"] = category
    return params


def _image_part(image_path: str | Path) -> tuple[str, bytes, str]:
    path = Path(image_path)
    filename = path.name or f"image-{int(time.time() * 1000)}.jpg"
    content_type = mimetypes.guess_type(filename)[0] or "image/jpeg"
    return filename, path.read_bytes(), content_type


class IssueStore:
    def __init__(self, api: ApiClient):
        self.api = api
        self.my_issues: list[Issue] = []
        self.all_issues: list[Issue] = []
        self.filters = IssueFilters()
        self.loading = False
        self.error: str | None = None

    @property
    def role(self) -> str | None:
        return self.api.session.role

    def _fail(self, exc: ApiError, fallback: str) -> ActionResult:
        self.error = exc.message or fallback
        return ActionResult(success=False, error=self.error)

    def _begin(self) -> None:
        self.loading = True
        self.error = None

    def _replace_local(self, updated: Issue) -> None:
        if self.role == "admin":
            self.all_issues = [updated if issue.id == updated.id else issue for issue in self.all_issues]
        else:
            self.my_issues = [updated if issue.id == updated.id else issue for issue in self.my_issues]

    def set_filters(self, status: str = "", category: str = "") -> None:
        self.filters = IssueFilters(status=status, category=category)

    def clear_error(self) -> None:
        self.error = None

    def fetch_my_issues(self, status: str = "", category: str = "") -> ActionResult:
        self._begin()
        try:
            data = self.api.get("/issues/my", params=_query_params(status, category))
            self.my_issues = [normalize_issue(raw) for raw in data or []]
            return ActionResult(success=True)
        except ApiError as exc:
            return self._fail(exc, "Failed to fetch issues")
        finally:
            self.loading = False

    def fetch_all_issues(self, status: str = "", category: str = "") -> ActionResult:
        self._begin()
        try:
            data = self.api.get("/issues", params=_query_params(status, category))
            self.all_issues = [normalize_issue(raw) for raw in data or []]
            return ActionResult(success=True)
        except ApiError as exc:
            return self._fail(exc, "Failed to fetch issues")
        finally:
            self.loading = False

    def fetch_issue(self, issue_id: str) -> ActionResult:
        self._begin()
        try:
            data = self.api.get(f"/issues/{issue_id}")
            return ActionResult(success=True, issue=normalize_issue(data))
        except ApiError as exc:
            return self._fail(exc, "Failed to fetch issue")
        finally:
            self.loading = False

    def refresh_issue(self, issue_id: str) -> ActionResult:
        return self.fetch_issue(issue_id)

    def create_issue(
        self,
        title: str,
        description: str,
        category: str,
        image_path: str | Path | None = None,
    ) -> ActionResult:
        self._begin()
        try:
            files = {"image": _image_part(image_path)} if image_path else None
            data = self.api.post(
                "/issues",
                data={"title": title, "description": description, "category": category},
                files=files,
            )
            created = normalize_issue(data)
            self.my_issues = [created, *self.my_issues]
        except ApiError as exc:
            logger.error("Create issue failed: %s", exc.message)
            return self._fail(exc, "Failed to create issue")
        finally:
            self.loading = False

        self.fetch_my_issues(self.filters.status, self.filters.category)
        return ActionResult(success=True, issue=created)

    def update_status(self, issue_id: str, status: str) -> ActionResult:
        self._begin()
        try:
            data = self.api.put(f"/issues/{issue_id}/status", json={"status": status_to_server(status)})
            updated = normalize_issue(data)
            self._replace_local(updated)
            return ActionResult(success=True, issue=updated)
        except ApiError as exc:
            return self._fail(exc, "Failed to update status")
        finally:
            self.loading = False

    def update_remarks(self, issue_id: str, admin_remarks: str) -> ActionResult:
        self._begin()
        try:
            data = self.api.put(f"/issues/{issue_id}/remarks", json={"adminRemarks": admin_remarks})
            updated = normalize_issue(data)
            self._replace_local(updated)
            return ActionResult(success=True, issue=updated)
        except ApiError as exc:
            return self._fail(exc, "Failed to update remarks")
        finally:
            self.loading = False

    def update_local_issue(self, raw: dict) -> None:
        self._replace_local(normalize_issue(raw))
