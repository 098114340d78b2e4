"""Ticket, project and version extraction from release changelogs.

Changelogs are free text (usually generated by a release tool from commit
messages), so extraction is regex-based and tolerant: anything that does not
look like a Jira key is ignored, and an empty changelog yields empty lists.

All results keep first-seen order so the webhook payload is deterministic.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from datetime import date

# Jira keys: uppercase project code (letters, digits, underscore) and a number.
# A key may follow a lowercase word and hyphen ("bugfix-ABC-1") but not an
# uppercase one ("X-ABC-1"), matching how Jira itself links keys in text.
TICKET_PATTERN = re.compile(r"(?<![A-Za-z0-9_])(?<![A-Z]-)([A-Z][A-Z0-9_]+)-(\d+)(?![A-Za-z0-9_])")
PROJECT_PATTERN = re.compile(r"^([A-Z][A-Z0-9_]+)-\d+$")
VERSION_PATTERN = re.compile(r"\d+(?:\.\d+)+(?:-[0-9A-Za-z.]+)?")


def _unique(items: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(items))


def parse_changelog_for_tickets(changelog: str | None) -> list[str]:
    """Return the distinct Jira ticket keys referenced in a changelog.

    >>> parse_changelog_for_tickets("fix(ABC-1): x\\nfeat(ABC-1, XYZ-9): y")
    ['ABC-1', 'XYZ-9']
    """
    if not changelog:
        return []
    return _unique(f"{project}-{number}" for project, number in TICKET_PATTERN.findall(changelog))


def parse_project_name(ticket: str) -> str:
    """Return the project prefix of a single ticket key ("ABC-12" -> "ABC").

    Raises:
        ValueError: If the string is not a ticket key.
    """
    match = PROJECT_PATTERN.match(ticket.strip())
    if not match:
        raise ValueError(f"Not a ticket key: {ticket!r}")
    return match.group(1)


def get_project_names(tickets: str | Iterable[str]) -> list[str]:
    """Return the distinct project prefixes for one or more ticket keys.

    A single string is treated as free text, so both "ABC-1" and
    "ABC-1 XYZ-2" work. Entries that are not ticket keys are skipped.
    """
    if isinstance(tickets, str):
        tickets = parse_changelog_for_tickets(tickets)

    projects = []
    for ticket in tickets:
        match = PROJECT_PATTERN.match(ticket.strip())
        if match:
            projects.append(match.group(1))
    return _unique(projects)


def parse_version(version: str | None) -> str:
    """Normalize a release label to its version number.

    "v1.4.0" -> "1.4.0", "release-2.0.1-rc.1" -> "2.0.1-rc.1". Labels with
    no dotted number are returned stripped but otherwise unchanged.
    """
    if not version:
        return ""
    label = version.strip()
    match = VERSION_PATTERN.search(label)
    return match.group(0) if match else label


def today() -> str:
    """Current local date as YYYY-MM-DD, the format Jira expects for releaseDate."""
    return date.today().isoformat()
