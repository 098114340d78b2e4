"""Release notification flow.

Given a changelog and a version label, the notifier:
1. Extracts the distinct Jira ticket keys from the changelog
2. Derives the distinct project prefixes of those tickets
3. Normalizes the version label
4. POSTs {"issues": [...], "version": "..."} to the configured webhook

The webhook (typically a Jira Automation incoming webhook) does the actual
fix-version bookkeeping. For setups without one, update_fix_versions()
performs the same bookkeeping directly through the tracker API; it is a
separate call and never runs as part of notify_release().
"""

from __future__ import annotations

import httpx

from release_notifier import PACKAGE_NAME
from release_notifier.changelog import (
    get_project_names,
    parse_changelog_for_tickets,
    parse_version,
    today,
)
from release_notifier.config import NotifierConfig
from release_notifier.logging_config import get_logger
from release_notifier.schemas import (
    BatchItem,
    BatchResult,
    NotificationResult,
    TrackerResult,
    WebhookPayload,
    fix_version_update,
)
from release_notifier.tracker import JiraClient, JiraClientProtocol

logger = get_logger(__name__)


class ReleaseNotifier:
    """Notifies the release webhook and, on request, updates fix versions.

    Stateless apart from its read-only configuration; every call is
    independent.

    Usage:
        notifier = ReleaseNotifier(load_config())
        result = await notifier.notify_release(changelog, "v1.4.0")
        if not result.delivered:
            sys.exit(1)
    """

    def __init__(
        self,
        config: NotifierConfig,
        tracker: JiraClientProtocol | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the notifier.

        Args:
            config: Credentials, host and webhook settings
            tracker: Tracker client. Defaults to a JiraClient on the same config.
            transport: Optional httpx transport for the webhook call
        """
        self.config = config
        self.tracker = tracker or JiraClient(config, transport=transport)
        self._transport = transport

    async def notify_release(self, changelog: str, version: str) -> NotificationResult:
        """Send the changelog's tickets and the release version to the webhook.

        Makes exactly one webhook call and never raises: failures are
        logged and reported through the returned result.

        Args:
            changelog: Release notes text (may be empty)
            version: Release version label (e.g. "v1.4.0")

        Returns:
            A NotificationResult; delivered is False if the webhook call failed
        """
        result = NotificationResult()
        try:
            result.tickets = parse_changelog_for_tickets(changelog)
            result.projects = get_project_names(result.tickets)
            result.version = parse_version(version)

            logger.info("release_projects", projects=result.projects)
            logger.info("release_tickets", tickets=result.tickets)

            payload = WebhookPayload(issues=result.tickets, version=result.version)
            resp = await self._send_webhook(payload)
            result.status_code = resp.status_code
            resp.raise_for_status()
            result.delivered = True
            logger.info(
                "webhook_sent",
                version=result.version,
                tickets_count=len(result.tickets),
                status_code=resp.status_code,
            )
        except httpx.HTTPStatusError as e:
            result.error = f"{e.response.status_code} {e.response.reason_phrase}: {e.response.text}"
            logger.error(
                "webhook_failed",
                version=result.version,
                status_code=e.response.status_code,
                error=e.response.text or str(e),
            )
        except Exception as e:
            result.error = str(e) or type(e).__name__
            logger.error(
                "webhook_failed",
                version=result.version,
                error=result.error,
                exc_info=True,
            )
        return result

    async def _send_webhook(self, payload: WebhookPayload) -> httpx.Response:
        if not self.config.webhook_url:
            raise ValueError("No webhook URL configured (JIRA_WEBHOOK_URL / webhookUrl)")

        async with httpx.AsyncClient(
            headers=self.config.auth_headers(),
            timeout=self.config.timeout,
            verify=self.config.verify_ssl,
            transport=self._transport,
        ) as client:
            return await client.post(
                self.config.webhook_url,
                content=payload.model_dump_json(),
            )

    async def update_fix_versions(
        self,
        changelog: str,
        version: str,
        create_versions: bool = True,
        fail_fast: bool = False,
    ) -> BatchResult:
        """Create the release version per project and tag every ticket with it.

        Calls run sequentially: first, for each project, resolve its id and
        create the version; then set fixVersions on each ticket.

        Args:
            changelog: Release notes text
            version: Release version label
            create_versions: Create the version in each project first. Turn off
                             when versions are created elsewhere.
            fail_fast: Stop at the first failed call. By default every call is
                       attempted and failures are collected.

        Returns:
            A BatchResult with one item per attempted call
        """
        tickets = parse_changelog_for_tickets(changelog)
        projects = get_project_names(tickets)
        label = parse_version(version)
        batch = BatchResult()

        def record(operation: str, target: str, outcome: TrackerResult) -> bool:
            batch.items.append(BatchItem(operation=operation, target=target, result=outcome))
            if not outcome.ok and fail_fast:
                batch.stopped_early = True
                return False
            return True

        if create_versions:
            for project in projects:
                logger.info("creating_version", version=label, project=project)
                project_id = await self.tracker.get_project_id_by_key(project)
                if not record("get_project_id_by_key", project, project_id):
                    return batch
                if not project_id.ok:
                    continue
                created = await self.tracker.create_version(
                    archived=False,
                    release_date=today(),
                    name=label,
                    description=f"Auto-generated by {PACKAGE_NAME}",
                    project_id=project_id.value,
                    released=False,
                )
                if not record("create_version", project, created):
                    return batch

        update = fix_version_update(label)
        for ticket in tickets:
            logger.info("setting_fix_version", version=label, ticket=ticket)
            outcome = await self.tracker.set_issue_properties(ticket, update)
            if not record("set_issue_properties", ticket, outcome):
                return batch

        logger.info(
            "fix_versions_complete",
            version=label,
            attempted=len(batch.items),
            failed=len(batch.failures),
        )
        return batch
