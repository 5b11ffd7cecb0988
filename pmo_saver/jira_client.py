"""Jira REST helper for the ticket picker."""

from __future__ import annotations

import logging
import re

import requests

from .config import UserSettings
from .models import ConnectionCheck, JiraIssue, JiraSearchResult

logger = logging.getLogger(__name__)

SEARCH_FIELDS = ["project", "key", "summary", "status", "issuetype"]
SEARCH_MAX_RESULTS = 1000

STATUS_EMOJIS = {
    "HYPERCARE": "🔧",
    "HYPERCARE (WITH CHECK)": "🔍",
    "Order received": "📋",
    "Test system available": "🧪",
    "Test System Available (Implementation Order)": "🧪",
    "Project go-live/productive start": "🚀",
    "System Design Assigned": "👤",
    "System Design Order Received": "📨",
    "System Design Started": "🎨",
    "Implementation Assigned": "👨‍💻",
    "Implementation Order Assigned": "🧑‍💼",
    "Implementation Started": "🔨",
    "Requirements Clarified": "✅",
    "Handover Check Needed": "🔍",
    "LIVE SYSTEM AVAILABLE": "🟢",
}
DEFAULT_STATUS_EMOJI = "📝"

_CLIENT_PATTERN = re.compile(r"^(\d+)\s*-\s*([^|]+)")


class JiraClient:
    """Query Jira with a personal access token."""

    def __init__(self, settings: UserSettings, session: requests.Session | None = None) -> None:
        self.settings = settings
        self.session = session or requests.Session()
        self.base_url = settings.jira_url.rstrip("/")

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.settings.jira_token}",
            "Accept": "application/json",
        }

    def test_connection(self) -> ConnectionCheck:
        """Call /myself and report who we are logged in as."""
        url = f"{self.base_url}/rest/api/2/myself"
        try:
            response = self.session.get(url, headers=self._headers(), timeout=30)
        except requests.RequestException as exc:
            return ConnectionCheck(success=False, error=str(exc))

        if response.status_code != 200:
            return ConnectionCheck(
                success=False, error=f"HTTP {response.status_code}: {response.text}"
            )
        try:
            data = response.json()
        except ValueError as exc:
            return ConnectionCheck(success=False, error=f"Unreadable response: {exc}")
        return ConnectionCheck(success=True, detail=data.get("displayName") or data.get("name") or "User")

    def search_issues(self, jql: str | None = None) -> JiraSearchResult:
        """Run the ticket JQL; any failure yields an empty result."""
        if not self.settings.has_jira_credentials:
            logger.error("Jira settings not configured")
            return JiraSearchResult()

        jql = jql or self.settings.jql
        url = f"{self.base_url}/rest/api/2/search"
        payload = {
            "jql": jql,
            "fields": SEARCH_FIELDS,
            "maxResults": SEARCH_MAX_RESULTS,
            "startAt": 0,
        }
        logger.debug("Using JQL filter: %s", jql)

        try:
            response = self.session.post(
                url,
                json=payload,
                headers={**self._headers(), "Content-Type": "application/json"},
                timeout=60,
            )
        except requests.RequestException as exc:
            logger.error("Jira search failed: %s", exc)
            return JiraSearchResult()

        if response.status_code != 200:
            logger.error("Jira search failed (%s): %s", response.status_code, response.text)
            return JiraSearchResult()

        try:
            data = response.json()
        except ValueError as exc:
            logger.error("Jira search returned unreadable JSON: %s", exc)
            return JiraSearchResult()

        result = JiraSearchResult(total=data.get("total") or 0)
        for raw in data.get("issues") or []:
            fields = raw.get("fields") or {}
            project = fields.get("project")
            if not project:
                continue
            result.projects[project["key"]] = {
                "key": project["key"],
                "name": project.get("name"),
                "id": project.get("id"),
            }
            result.issues.append(
                JiraIssue(
                    key=raw["key"],
                    summary=fields.get("summary") or "No summary",
                    status=(fields.get("status") or {}).get("name", "Unknown"),
                    issue_type=(fields.get("issuetype") or {}).get("name", "Unknown"),
                    project_key=project["key"],
                    project_name=project.get("name", ""),
                )
            )
        logger.info("Jira returned %s issues across %s projects", len(result.issues), len(result.projects))
        return result


def status_emoji(status: str) -> str:
    return STATUS_EMOJIS.get(status, DEFAULT_STATUS_EMOJI)


def format_ticket_display(issue: JiraIssue) -> str:
    """`<emoji> KEY - Client` for summaries shaped like `123 - Client | ...`."""
    emoji = status_emoji(issue.status)
    match = _CLIENT_PATTERN.match(issue.summary or "")
    if match and match.group(2).strip():
        client = match.group(2).strip()
        if len(client) > 20:
            client = client[:17] + "..."
        return f"{emoji} {issue.key} - {client}"
    return f"{emoji} {issue.key}"
