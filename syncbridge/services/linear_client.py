"""Linear GraphQL API client wrapper"""
import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)

ISSUE_LABEL_QUERY = """
query IssueLabel($id: String!) {
  issueLabel(id: $id) { id name color }
}
"""

ISSUE_QUERY = """
query Issue($id: String!) {
  issue(id: $id) { id identifier title description }
}
"""

ISSUE_COMMENTS_QUERY = """
query IssueComments($id: String!) {
  issue(id: $id) {
    comments(orderBy: createdAt) {
      nodes { id body createdAt user { id name displayName } }
    }
  }
}
"""

CYCLE_QUERY = """
query Cycle($id: String!) {
  cycle(id: $id) { id name number description endsAt }
}
"""

VIEWER_QUERY = """
query Viewer {
  viewer { id name displayName email }
}
"""

ATTACHMENT_MUTATION = """
mutation AttachmentCreate($input: AttachmentCreateInput!) {
  attachmentCreate(input: $input) { success attachment { id } }
}
"""


def graphql_data(response: httpx.Response, key: str) -> Optional[Any]:
    """Pull `data.<key>` out of a GraphQL response, or None when absent/errored."""
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    if body.get("errors"):
        logger.warning(f"Linear returned errors for {key}: {body['errors']}")
    data = body.get("data") or {}
    return data.get(key)


class LinearClient:
    """Wrapper for Linear API operations.

    Every method returns the raw `httpx.Response`; use `graphql_data` to read it.
    """

    def __init__(
        self,
        api_key: str,
        *,
        api_url: str = "https://api.linear.app/graphql",
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """Initialize Linear client"""
        self.http = httpx.Client(
            timeout=timeout,
            transport=transport,
            headers={"Authorization": api_key, "Content-Type": "application/json"},
        )
        self.api_url = api_url

    def close(self):
        self.http.close()

    def query(self, query: str, variables: Optional[Dict[str, Any]] = None) -> httpx.Response:
        """Run a GraphQL query or mutation"""
        return self.http.post(self.api_url, json={"query": query, "variables": variables or {}})

    def issue_label(self, label_id: str) -> httpx.Response:
        return self.query(ISSUE_LABEL_QUERY, {"id": label_id})

    def issue(self, issue_id: str) -> httpx.Response:
        return self.query(ISSUE_QUERY, {"id": issue_id})

    def issue_comments(self, issue_id: str) -> httpx.Response:
        return self.query(ISSUE_COMMENTS_QUERY, {"id": issue_id})

    def cycle(self, cycle_id: str) -> httpx.Response:
        return self.query(CYCLE_QUERY, {"id": cycle_id})

    def viewer(self) -> httpx.Response:
        return self.query(VIEWER_QUERY)

    def create_attachment(self, issue_id: str, title: str, url: str, subtitle: Optional[str] = None) -> httpx.Response:
        """Attach a link (e.g. the mirrored GitHub issue) to a Linear ticket"""
        payload: Dict[str, Any] = {"issueId": issue_id, "title": title, "url": url}
        if subtitle:
            payload["subtitle"] = subtitle
        return self.query(ATTACHMENT_MUTATION, {"input": payload})
