"""Jira REST API passthrough client.

Each method is one request/response round trip against the Jira REST API
(v2 by default). Failures are logged and returned inside a TrackerResult
instead of being raised, so a CI step can decide what a failed tracker call
means for the job.

Design notes:
- Uses httpx.AsyncClient, one short-lived client per call
- Basic auth from "username:token", JSON in and out
- TLS verification and timeout come from NotifierConfig
- A Protocol lets the notifier and tests swap in MockJiraClient

Jira REST docs: https://developer.atlassian.com/cloud/jira/platform/rest/v2/
"""

from __future__ import annotations

import json
from typing import Any, Protocol

import httpx

from release_notifier.config import NotifierConfig
from release_notifier.logging_config import get_logger
from release_notifier.schemas import TrackerResult, VersionCreate

logger = get_logger(__name__)

# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


class JiraClientProtocol(Protocol):
    """Interface the notifier needs from a tracker client."""

    async def get_issue(self, issue_key: str) -> TrackerResult: ...

    async def get_version(self, version_id: str) -> TrackerResult: ...

    async def get_versions(self, project_key: str) -> TrackerResult: ...

    async def create_version(
        self,
        archived: bool | None = None,
        release_date: str | None = None,
        name: str | None = None,
        description: str | None = None,
        project_id: str | int | None = None,
        released: bool | None = None,
    ) -> TrackerResult: ...

    async def set_issue_properties(
        self, issue_id: str, issue_update: dict[str, Any] | str
    ) -> TrackerResult: ...

    async def get_project_id_by_key(self, key: str) -> TrackerResult: ...


# ---------------------------------------------------------------------------
# Concrete Implementation
# ---------------------------------------------------------------------------


class JiraClient:
    """Jira REST client using httpx.

    Usage:
        client = JiraClient(load_config())
        result = await client.get_issue("ABC-123")
        if result.ok:
            print(result.value["fields"]["summary"])
    """

    def __init__(
        self,
        config: NotifierConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Credentials, host and request settings
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self._config = config
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._config.api_url,
            headers=self._config.auth_headers(),
            timeout=self._config.timeout,
            verify=self._config.verify_ssl,
            transport=self._transport,
        )

    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        content: str | None = None,
        **log_context: Any,
    ) -> TrackerResult:
        """Send one request and wrap the outcome in a TrackerResult."""
        try:
            async with self._client() as client:
                resp = await client.request(method, path, content=content)
                resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                "tracker_request_failed",
                operation=operation,
                status_code=e.response.status_code,
                error=e.response.text or str(e),
                **log_context,
            )
            return TrackerResult.failure(
                f"{e.response.status_code} {e.response.reason_phrase}: {e.response.text}",
                status_code=e.response.status_code,
            )
        except httpx.HTTPError as e:
            logger.error(
                "tracker_request_failed",
                operation=operation,
                error=str(e) or type(e).__name__,
                **log_context,
            )
            return TrackerResult.failure(str(e) or type(e).__name__)

        try:
            value = resp.json() if resp.content else None
        except ValueError as e:
            logger.error("tracker_response_invalid", operation=operation, error=str(e), **log_context)
            return TrackerResult.failure(
                f"Invalid JSON in response: {e}", status_code=resp.status_code
            )

        logger.info(
            "tracker_request_complete",
            operation=operation,
            status_code=resp.status_code,
            **log_context,
        )
        return TrackerResult.success(value, status_code=resp.status_code)

    async def get_issue(self, issue_key: str) -> TrackerResult:
        """Fetch an issue by key (e.g. "ABC-123")."""
        return await self._request("get_issue", "GET", f"/issue/{issue_key}", issue=issue_key)

    async def get_version(self, version_id: str) -> TrackerResult:
        """Fetch a project version by its id."""
        return await self._request(
            "get_version", "GET", f"/version/{version_id}", version_id=version_id
        )

    async def get_versions(self, project_key: str) -> TrackerResult:
        """List all versions of a project."""
        return await self._request(
            "get_versions", "GET", f"/project/{project_key}/versions", project=project_key
        )

    async def create_version(
        self,
        archived: bool | None = None,
        release_date: str | None = None,
        name: str | None = None,
        description: str | None = None,
        project_id: str | int | None = None,
        released: bool | None = None,
    ) -> TrackerResult:
        """Create a project version.

        Unset fields fall back to an unreleased, unarchived version named
        "Unnamed" with today's release date.

        Args:
            archived: Whether the version is archived
            release_date: YYYY-MM-DD release date
            name: Version name
            description: Version description
            project_id: Numeric id of the owning project
            released: Whether the version is released

        Returns:
            TrackerResult holding the created version
        """
        version = VersionCreate.with_defaults(
            archived=archived,
            release_date=release_date,
            name=name,
            description=description,
            project_id=project_id,
            released=released,
        )
        body = version.model_dump_json(by_alias=True)
        return await self._request(
            "create_version", "POST", "/version", content=body, name=version.name,
            project_id=project_id,
        )

    async def set_issue_properties(
        self, issue_id: str, issue_update: dict[str, Any] | str
    ) -> TrackerResult:
        """Update issue fields with PUT /issue/{id}.

        Args:
            issue_id: Issue key or id
            issue_update: Update document, or an already serialized JSON string
                          which is sent unmodified

        Returns:
            TrackerResult; Jira answers 204 with no body on success
        """
        body = issue_update if isinstance(issue_update, str) else json.dumps(issue_update)
        return await self._request(
            "set_issue_properties", "PUT", f"/issue/{issue_id}", content=body, issue=issue_id
        )

    async def get_project_id_by_key(self, key: str) -> TrackerResult:
        """Resolve a project key (e.g. "abc") to the project's id."""
        project_key = key.upper()
        result = await self._request(
            "get_project", "GET", f"/project/{project_key}", project=project_key
        )
        if not result.ok:
            return result
        if not isinstance(result.value, dict) or "id" not in result.value:
            logger.error("project_id_missing", project=project_key)
            return TrackerResult.failure(
                f"Project {project_key} response has no id", status_code=result.status_code
            )
        return TrackerResult.success(result.value["id"], status_code=result.status_code)


# ---------------------------------------------------------------------------
# Mock Implementation (for testing and dry runs)
# ---------------------------------------------------------------------------


class MockJiraClient:
    """In-memory tracker that records calls instead of hitting Jira.

    Usage:
        client = MockJiraClient(projects={"ABC": "10001"}, failing={"ABC-2"})
        await client.set_issue_properties("ABC-2", {...})  # -> failure result
    """

    def __init__(
        self,
        issues: dict[str, dict[str, Any]] | None = None,
        projects: dict[str, str] | None = None,
        versions: dict[str, list[dict[str, Any]]] | None = None,
        failing: set[str] | None = None,
    ) -> None:
        """Initialize with optional predefined data.

        Args:
            issues: issue key -> issue JSON
            projects: project key -> project id
            versions: project key -> version list
            failing: keys/ids for which every call fails with a 404
        """
        self._issues = issues or {}
        self._projects = projects or {}
        self._versions = versions or {}
        self._failing = failing or set()
        self.calls: list[tuple[str, Any]] = []

    def _lookup(self, target: str, value: Any) -> TrackerResult:
        if target in self._failing or value is None:
            return TrackerResult.failure(f"404 Not Found: {target}", status_code=404)
        return TrackerResult.success(value, status_code=200)

    async def get_issue(self, issue_key: str) -> TrackerResult:
        self.calls.append(("get_issue", issue_key))
        return self._lookup(issue_key, self._issues.get(issue_key))

    async def get_version(self, version_id: str) -> TrackerResult:
        self.calls.append(("get_version", version_id))
        for versions in self._versions.values():
            for version in versions:
                if str(version.get("id")) == str(version_id):
                    return self._lookup(version_id, version)
        return self._lookup(version_id, None)

    async def get_versions(self, project_key: str) -> TrackerResult:
        self.calls.append(("get_versions", project_key))
        return self._lookup(project_key, self._versions.get(project_key, []))

    async def create_version(
        self,
        archived: bool | None = None,
        release_date: str | None = None,
        name: str | None = None,
        description: str | None = None,
        project_id: str | int | None = None,
        released: bool | None = None,
    ) -> TrackerResult:
        version = VersionCreate.with_defaults(
            archived=archived,
            release_date=release_date,
            name=name,
            description=description,
            project_id=project_id,
            released=released,
        )
        self.calls.append(("create_version", version.model_dump(by_alias=True)))
        if str(project_id) in self._failing:
            return TrackerResult.failure(f"400 Bad Request: {project_id}", status_code=400)
        return TrackerResult.success(version.model_dump(by_alias=True), status_code=201)

    async def set_issue_properties(
        self, issue_id: str, issue_update: dict[str, Any] | str
    ) -> TrackerResult:
        body = issue_update if isinstance(issue_update, str) else json.dumps(issue_update)
        self.calls.append(("set_issue_properties", (issue_id, body)))
        if issue_id in self._failing:
            return TrackerResult.failure(f"404 Not Found: {issue_id}", status_code=404)
        return TrackerResult.success(None, status_code=204)

    async def get_project_id_by_key(self, key: str) -> TrackerResult:
        project_key = key.upper()
        self.calls.append(("get_project_id_by_key", project_key))
        return self._lookup(project_key, self._projects.get(project_key))
