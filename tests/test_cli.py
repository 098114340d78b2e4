"""Tests for the CLI entry point.

Network calls are replaced by patching the notifier and client classes the
CLI instantiates; logging setup is replaced so log output does not mix
with the JSON printed on stdout.

Run with: pytest tests/test_cli.py -v
"""

from __future__ import annotations

import io
import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
import structlog

from release_notifier import cli
from release_notifier.schemas import (
    BatchItem,
    BatchResult,
    NotificationResult,
    TrackerResult,
)

ENV = {
    "JIRA_USERNAME": "bot@example.com",
    "JIRA_TOKEN": "secret-token",
    "JIRA_HOST": "example.atlassian.net",
    "JIRA_WEBHOOK_URL": "https://hooks.example.com/release",
}


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch: pytest.MonkeyPatch) -> list[dict]:
    calls: list[dict] = []

    def fake_setup_logging(**kwargs) -> None:
        calls.append(kwargs)
        structlog.configure(logger_factory=structlog.ReturnLoggerFactory())

    monkeypatch.setattr(cli, "setup_logging", fake_setup_logging)
    return calls


@pytest.fixture
def env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name, value in ENV.items():
        monkeypatch.setenv(name, value)


@pytest.fixture
def changelog_file(tmp_path: Path) -> Path:
    path = tmp_path / "CHANGELOG.md"
    path.write_text("* ABC-1 login\n* XYZ-2 export\n")
    return path


def patch_notifier(monkeypatch: pytest.MonkeyPatch, **methods: AsyncMock) -> MagicMock:
    notifier = MagicMock()
    for name, mock in methods.items():
        setattr(notifier, name, mock)
    factory = MagicMock(return_value=notifier)
    monkeypatch.setattr(cli, "ReleaseNotifier", factory)
    return notifier


class TestNotify:
    """release-notifier notify"""

    def test_delivered_exits_zero(self, env, changelog_file, monkeypatch, capsys) -> None:
        notify = AsyncMock(
            return_value=NotificationResult(
                tickets=["ABC-1", "XYZ-2"], projects=["ABC", "XYZ"],
                version="1.4.0", delivered=True, status_code=200,
            )
        )
        patch_notifier(monkeypatch, notify_release=notify)

        code = cli.main(["notify", "-c", str(changelog_file), "-v", "v1.4.0"])

        assert code == cli.EXIT_OK
        notify.assert_awaited_once_with("* ABC-1 login\n* XYZ-2 export\n", "v1.4.0")
        output = json.loads(capsys.readouterr().out)
        assert output["delivered"] is True
        assert output["tickets"] == ["ABC-1", "XYZ-2"]

    def test_failed_delivery_exits_one(self, env, changelog_file, monkeypatch) -> None:
        notify = AsyncMock(return_value=NotificationResult(version="1.4.0", error="timeout"))
        patch_notifier(monkeypatch, notify_release=notify)

        assert cli.main(["notify", "-c", str(changelog_file), "-v", "1.4.0"]) == cli.EXIT_FAILED

    def test_reads_changelog_from_stdin(self, env, monkeypatch) -> None:
        notify = AsyncMock(return_value=NotificationResult(delivered=True))
        patch_notifier(monkeypatch, notify_release=notify)
        monkeypatch.setattr("sys.stdin", io.StringIO("ABC-7 piped\n"))

        cli.main(["notify", "-c", "-", "-v", "1.0.0"])

        notify.assert_awaited_once_with("ABC-7 piped\n", "1.0.0")

    def test_missing_config_exits_two(self, changelog_file, monkeypatch, capsys) -> None:
        inputs = ["INPUT_JIRAUSERNAME", "INPUT_JIRATOKEN", "INPUT_JIRAHOST", "INPUT_WEBHOOKURL"]
        for name in [*ENV, *inputs]:
            monkeypatch.delenv(name, raising=False)

        code = cli.main(["notify", "-c", str(changelog_file), "-v", "1.0.0"])

        assert code == cli.EXIT_CONFIG
        assert "error:" in capsys.readouterr().err

    def test_missing_changelog_file_exits_two(self, env, tmp_path) -> None:
        code = cli.main(["notify", "-c", str(tmp_path / "nope.md"), "-v", "1.0.0"])
        assert code == cli.EXIT_CONFIG

    def test_undecodable_changelog_bytes_are_replaced(self, env, tmp_path, monkeypatch) -> None:
        path = tmp_path / "CHANGELOG.md"
        path.write_bytes(b"ABC-1 \xff\xfe fix\n")
        notify = AsyncMock(return_value=NotificationResult(delivered=True))
        patch_notifier(monkeypatch, notify_release=notify)

        code = cli.main(["notify", "-c", str(path), "-v", "1.0.0"])

        assert code == cli.EXIT_OK
        changelog = notify.await_args.args[0]
        assert changelog.startswith("ABC-1 ")
        assert "\ufffd" in changelog

    def test_logging_options_are_passed(self, env, changelog_file, monkeypatch, quiet_logging):
        patch_notifier(
            monkeypatch, notify_release=AsyncMock(return_value=NotificationResult(delivered=True))
        )

        cli.main(["--env", "ci", "--log-level", "debug",
                  "notify", "-c", str(changelog_file), "-v", "1.0.0"])

        assert quiet_logging == [{"environment": "ci", "log_level": "DEBUG"}]

    def test_unknown_log_level_is_a_usage_error(self, env, capsys) -> None:
        with pytest.raises(SystemExit) as exc:
            cli.main(["--log-level", "verbose", "issue", "ABC-1"])

        assert exc.value.code == 2
        assert "--log-level" in capsys.readouterr().err

    def test_bad_log_level_from_environment_exits_two(self, env, monkeypatch, capsys) -> None:
        def reject(**kwargs) -> None:
            raise ValueError("Unknown log level: VERBOSE")

        monkeypatch.setattr(cli, "setup_logging", reject)

        assert cli.main(["issue", "ABC-1"]) == cli.EXIT_CONFIG
        assert "Unknown log level" in capsys.readouterr().err


class TestFixVersions:
    """release-notifier fix-versions"""

    def test_flags_are_forwarded(self, env, changelog_file, monkeypatch) -> None:
        update = AsyncMock(return_value=BatchResult())
        patch_notifier(monkeypatch, update_fix_versions=update)

        code = cli.main(
            ["fix-versions", "-c", str(changelog_file), "-v", "1.4.0", "--no-create", "--fail-fast"]
        )

        assert code == cli.EXIT_OK
        update.assert_awaited_once_with(
            "* ABC-1 login\n* XYZ-2 export\n", "1.4.0", create_versions=False, fail_fast=True
        )

    def test_partial_failure_exits_one(self, env, changelog_file, monkeypatch) -> None:
        batch = BatchResult(
            items=[
                BatchItem(
                    operation="set_issue_properties",
                    target="ABC-1",
                    result=TrackerResult.failure("404 Not Found", status_code=404),
                )
            ]
        )
        patch_notifier(monkeypatch, update_fix_versions=AsyncMock(return_value=batch))

        assert cli.main(["fix-versions", "-c", str(changelog_file), "-v", "1.4.0"]) == 1


class TestPassthrough:
    """release-notifier issue / version / versions / project-id"""

    @pytest.mark.parametrize(
        ("argv", "method", "arg"),
        [
            (["issue", "ABC-1"], "get_issue", "ABC-1"),
            (["version", "10100"], "get_version", "10100"),
            (["versions", "ABC"], "get_versions", "ABC"),
            (["project-id", "abc"], "get_project_id_by_key", "abc"),
        ],
    )
    def test_dispatch(self, env, monkeypatch, capsys, argv, method, arg) -> None:
        client = MagicMock()
        call = AsyncMock(return_value=TrackerResult.success({"id": "1"}, status_code=200))
        setattr(client, method, call)
        monkeypatch.setattr(cli, "JiraClient", MagicMock(return_value=client))

        assert cli.main(argv) == cli.EXIT_OK
        call.assert_awaited_once_with(arg)
        assert json.loads(capsys.readouterr().out)["value"] == {"id": "1"}

    def test_failure_exits_one(self, env, monkeypatch) -> None:
        client = MagicMock()
        client.get_issue = AsyncMock(return_value=TrackerResult.failure("401 Unauthorized"))
        monkeypatch.setattr(cli, "JiraClient", MagicMock(return_value=client))

        assert cli.main(["issue", "ABC-1"]) == cli.EXIT_FAILED
