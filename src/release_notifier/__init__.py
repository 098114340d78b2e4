"""Release Notifier.

Extracts Jira ticket keys from a release changelog and notifies a webhook
with the ticket list and release version. Also exposes thin passthrough
calls to the Jira REST API for CI steps that need them directly.
"""

__version__ = "0.1.0"

PACKAGE_NAME = "release-notifier"
