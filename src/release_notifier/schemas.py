"""Pydantic models for what the notifier sends and returns.

Tracker responses are passed through as plain JSON (dicts/lists); only the
webhook payload and the result envelopes are modelled here. Results carry
failures as data so the CI step decides whether a failed call fails the job.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from release_notifier.changelog import today


# ---------------------------------------------------------------------------
# Outbound payloads
# ---------------------------------------------------------------------------


class WebhookPayload(BaseModel):
    """Body POSTed to the release webhook.

    Attributes:
        issues: Distinct ticket keys referenced in the changelog
        version: Normalized release version
    """

    issues: list[str] = Field(default_factory=list, description="Ticket keys")
    version: str = Field(..., description="Normalized release version")


class VersionCreate(BaseModel):
    """Body for POST /rest/api/2/version, using Jira's field names."""

    archived: bool = False
    release_date: str = Field(..., alias="releaseDate")
    name: str = "Unnamed"
    description: str = "An excellent version"
    project_id: str | int | None = Field(None, alias="projectId")
    released: bool = False

    model_config = {"populate_by_name": True}

    @classmethod
    def with_defaults(
        cls,
        archived: bool | None = None,
        release_date: str | None = None,
        name: str | None = None,
        description: str | None = None,
        project_id: str | int | None = None,
        released: bool | None = None,
    ) -> VersionCreate:
        """Build a version body, filling unset or empty fields with defaults.

        Defaults: unarchived, unreleased, named "Unnamed", released today.
        """
        return cls(
            archived=archived or False,
            release_date=release_date or today(),
            name=name or "Unnamed",
            description=description or "An excellent version",
            project_id=project_id,
            released=released or False,
        )


def fix_version_update(version: str) -> dict[str, Any]:
    """Issue update that sets the fixVersions field to a single version."""
    return {"update": {"fixVersions": [{"set": [{"name": version}]}]}}


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class TrackerResult(BaseModel):
    """Outcome of a single tracker call.

    Attributes:
        ok: Whether the call succeeded
        value: Parsed JSON response (or derived value) on success
        error: Error description on failure
        status_code: HTTP status, if a response was received
    """

    ok: bool
    value: Any = None
    error: str | None = None
    status_code: int | None = None

    @classmethod
    def success(cls, value: Any, status_code: int | None = None) -> TrackerResult:
        return cls(ok=True, value=value, status_code=status_code)

    @classmethod
    def failure(cls, error: str, status_code: int | None = None) -> TrackerResult:
        return cls(ok=False, error=error, status_code=status_code)


class NotificationResult(BaseModel):
    """Outcome of notify_release.

    Attributes:
        tickets: Ticket keys found in the changelog
        projects: Distinct project prefixes of those tickets
        version: Normalized version sent to the webhook
        delivered: True if the webhook answered with a 2xx status
        status_code: Webhook HTTP status, if a response was received
        error: Error description when delivery failed
    """

    tickets: list[str] = Field(default_factory=list)
    projects: list[str] = Field(default_factory=list)
    version: str = ""
    delivered: bool = False
    status_code: int | None = None
    error: str | None = None


class BatchItem(BaseModel):
    """One tracker call inside a batch, labelled by what it acted on."""

    operation: str
    target: str
    result: TrackerResult


class BatchResult(BaseModel):
    """Outcome of a sequential batch of tracker calls.

    Attributes:
        items: Every call that was attempted, in order
        stopped_early: True if fail-fast aborted the remaining calls
    """

    items: list[BatchItem] = Field(default_factory=list)
    stopped_early: bool = False

    @property
    def failures(self) -> list[BatchItem]:
        return [item for item in self.items if not item.result.ok]

    @property
    def ok(self) -> bool:
        return not self.failures and not self.stopped_early
