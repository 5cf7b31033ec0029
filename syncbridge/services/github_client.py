"""GitHub REST API client wrapper"""
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

logger = logging.getLogger(__name__)


class GitHubClient:
    """Wrapper for GitHub API operations on one repository.

    Every method returns the raw `httpx.Response`; interpreting the status code
    is the caller's job (see `MutationExecutor`).
    """

    def __init__(
        self,
        token: str,
        repo_name: str,
        *,
        api_url: str = "https://api.github.com",
        timeout: float = 10.0,
        user_agent: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """Initialize GitHub client"""
        self.repo_name = repo_name
        self.http = httpx.Client(
            base_url=api_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
            headers={
                "Authorization": f"token {token}",
                "Accept": "application/vnd.github+json",
                "User-Agent": user_agent or f"{repo_name}, syncbridge",
            },
        )

    def close(self):
        self.http.close()

    def _repo_path(self, suffix: str = "") -> str:
        return f"/repos/{self.repo_name}{suffix}"

    def _issue_path(self, issue_number: int, suffix: str = "") -> str:
        return self._repo_path(f"/issues/{int(issue_number)}{suffix}")

    def create_issue(self, title: str, body: str, assignees: Optional[List[str]] = None) -> httpx.Response:
        """Create a new issue"""
        payload: Dict[str, Any] = {"title": title, "body": body}
        if assignees:
            payload["assignees"] = list(assignees)
        return self.http.post(self._repo_path("/issues"), json=payload)

    def patch_issue(self, issue_number: int, fields: Dict[str, Any]) -> httpx.Response:
        """Update fields of an existing issue"""
        return self.http.patch(self._issue_path(issue_number), json=dict(fields))

    def get_issue(self, issue_number: int) -> httpx.Response:
        """Get a specific issue by number"""
        return self.http.get(self._issue_path(issue_number))

    def create_label(self, name: str, color: str, description: Optional[str] = None) -> httpx.Response:
        """Create a label in the repository (422 when it already exists)"""
        payload = {"name": name, "color": color.lstrip("#")}
        if description:
            payload["description"] = description
        return self.http.post(self._repo_path("/labels"), json=payload)

    def apply_labels(self, issue_number: int, names: List[str]) -> httpx.Response:
        """Add labels to an issue, keeping the ones it already has"""
        return self.http.post(self._issue_path(issue_number, "/labels"), json={"labels": list(names)})

    def delete_label(self, issue_number: int, name: str) -> httpx.Response:
        """Remove a label from an issue (the label itself stays in the repo)"""
        return self.http.delete(self._issue_path(issue_number, f"/labels/{quote(name, safe='')}"))

    def create_milestone(self, title: str, description: str, state: str) -> httpx.Response:
        """Create a milestone in the repository"""
        return self.http.post(
            self._repo_path("/milestones"),
            json={"title": title, "description": description, "state": state},
        )

    def set_issue_milestone(self, issue_number: int, milestone_number: Optional[int]) -> httpx.Response:
        """Set (or clear, with None) the issue's milestone"""
        return self.patch_issue(issue_number, {"milestone": milestone_number})

    def create_comment(self, issue_number: int, body: str) -> httpx.Response:
        """Create a comment on an issue"""
        return self.http.post(self._issue_path(issue_number, "/comments"), json={"body": body})

    def add_assignees(self, issue_number: int, usernames: List[str]) -> httpx.Response:
        return self.http.post(
            self._issue_path(issue_number, "/assignees"), json={"assignees": list(usernames)}
        )

    def remove_assignees(self, issue_number: int, usernames: List[str]) -> httpx.Response:
        # DELETE with a JSON body needs the generic request() API.
        return self.http.request(
            "DELETE", self._issue_path(issue_number, "/assignees"), json={"assignees": list(usernames)}
        )

    def get_user(self, user_id: int) -> httpx.Response:
        """Get a user by numeric id"""
        return self.http.get(f"/user/{int(user_id)}")
