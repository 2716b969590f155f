"""Tests for the command line interface."""

from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from ihcclient import cli
from ihcclient.changes import ChangeStreamCoordinator, StreamState
from ihcclient.models import ResourceValue, ValueKind


class TestParser:
    """Tests for argument parsing."""

    def test_listen(self) -> None:
        args = cli.build_parser().parse_args(["-v", "listen", "1", "2", "--poll-timeout", "10"])
        assert args.verbose is True
        assert args.command == "listen"
        assert args.resource_ids == [1, 2]
        assert args.poll_timeout == 10
        assert args.settings == "ihcsettings.json"

    @pytest.mark.parametrize(("text", "expected"), [("on", True), ("False", False), ("1", True)])
    def test_set_bool(self, text: str, expected: bool) -> None:
        args = cli.build_parser().parse_args(["set-bool", "16451", text])
        assert args.value is expected

    def test_set_bool_invalid(self) -> None:
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["set-bool", "16451", "maybe"])

    def test_command_required(self) -> None:
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args([])

    def test_listen_default_poll_timeout(self) -> None:
        assert cli.build_parser().parse_args(["listen", "1"]).poll_timeout == 15

    @pytest.mark.parametrize("timeout", ["0", "20", "25", "ten"])
    def test_listen_poll_timeout_out_of_range(
        self, timeout: str, capsys: pytest.CaptureFixture
    ) -> None:
        """Poll timeouts the stream would reject are refused before connecting."""
        with pytest.raises(SystemExit) as exit_info:
            cli.build_parser().parse_args(["listen", "1", "--poll-timeout", timeout])
        assert exit_info.value.code == 2
        assert "--poll-timeout" in capsys.readouterr().err


def make_auth() -> MagicMock:
    """Create an AuthenticationService stand-in usable with async with."""
    auth = MagicMock()
    auth.__aenter__ = AsyncMock(return_value=auth)
    auth.__aexit__ = AsyncMock(return_value=False)
    auth.authenticate = AsyncMock()
    auth.ping = AsyncMock(return_value=True)
    return auth


class TestRun:
    """Tests for the commands run against a controller."""

    @pytest.mark.parametrize(("up", "status", "output"), [(True, 0, "up\n"), (False, 1, "down\n")])
    async def test_ping(
        self, settings, capsys: pytest.CaptureFixture, up: bool, status: int, output: str
    ) -> None:
        """ping reports the controller state without logging in."""
        auth = make_auth()
        auth.ping.return_value = up

        with patch.object(cli.AuthenticationService, "create", return_value=auth):
            assert await cli.run(argparse.Namespace(command="ping"), settings) == status

        auth.authenticate.assert_not_awaited()
        assert capsys.readouterr().out == output

    @pytest.mark.parametrize(("accepted", "status"), [(True, 0), (False, 1)])
    async def test_set_bool(
        self, settings, capsys: pytest.CaptureFixture, accepted: bool, status: int
    ) -> None:
        """set-bool writes a runtime output value and reports rejection."""
        auth = make_auth()
        resources = MagicMock()
        resources.set_resource_value = AsyncMock(return_value=accepted)
        args = argparse.Namespace(command="set-bool", resource_id=16451, value=True)

        with patch.object(cli.AuthenticationService, "create", return_value=auth), patch.object(
            cli, "ResourceInteractionService", return_value=resources
        ):
            assert await cli.run(args, settings) == status

        auth.authenticate.assert_awaited_once()
        resources.set_resource_value.assert_awaited_once_with(
            ResourceValue.create_bool_runtime_output(16451, True)
        )
        assert ("rejected" in capsys.readouterr().out) is not accepted

    async def test_listen(self, settings, capsys: pytest.CaptureFixture) -> None:
        """listen prints changes until cancelled, then disables notifications."""
        auth = make_auth()
        client = MagicMock()
        client.enable_runtime_value_notifications = AsyncMock(return_value=[])
        client.disable_runtime_value_notifications = AsyncMock(return_value=True)
        streams: list[ChangeStreamCoordinator] = []

        def open_stream(resource_ids, cancel, poll_timeout):
            stream = ChangeStreamCoordinator(
                client, resource_ids, cancel, poll_timeout, poll_delay=0
            )
            streams.append(stream)
            return stream

        async def poll(timeout: int) -> list[ResourceValue]:
            if client.wait_for_resource_value_changes.await_count == 1:
                return [ResourceValue(16451, ValueKind.BOOL, True)]
            # Same as pressing Ctrl-C
            resources.get_resource_value_changes.call_args.args[1].set()
            return []

        client.wait_for_resource_value_changes = AsyncMock(side_effect=poll)
        resources = MagicMock()
        resources.get_resource_value_changes = MagicMock(side_effect=open_stream)
        args = argparse.Namespace(command="listen", resource_ids=[16451], poll_timeout=10)

        with patch.object(cli.AuthenticationService, "create", return_value=auth), patch.object(
            cli, "ResourceInteractionService", return_value=resources
        ):
            assert await cli.run(args, settings) == 0

        auth.authenticate.assert_awaited_once()
        cancel = resources.get_resource_value_changes.call_args.args[1]
        assert isinstance(cancel, asyncio.Event)
        assert cancel.is_set()
        client.wait_for_resource_value_changes.assert_awaited_with(10)
        client.disable_runtime_value_notifications.assert_awaited_once_with((16451,))
        assert streams[0].state is StreamState.STOPPED
        assert capsys.readouterr().out == "16451: BOOL True\n"


def test_format_value() -> None:
    assert cli.format_value(ResourceValue(5, ValueKind.INT, 7)) == "5: INT 7"


def test_invalid_settings_file(tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
    """A missing settings file exits with status 2 before connecting."""
    assert cli.main(["--settings", str(tmp_path / "missing.json"), "ping"]) == 2
    assert "Invalid settings file" in capsys.readouterr().out


async def test_run_get(capsys: pytest.CaptureFixture, settings) -> None:
    """get logs in and prints one line per value."""
    auth = MagicMock()
    auth.__aenter__ = AsyncMock(return_value=auth)
    auth.__aexit__ = AsyncMock(return_value=False)
    auth.authenticate = AsyncMock()
    resources = MagicMock()
    resources.get_runtime_values = AsyncMock(
        return_value=[ResourceValue.create_bool_runtime_output(16451, True)]
    )
    args = argparse.Namespace(command="get", resource_ids=[16451])

    with patch.object(cli.AuthenticationService, "create", return_value=auth), patch.object(
        cli, "ResourceInteractionService", return_value=resources
    ):
        assert await cli.run(args, settings) == 0

    auth.authenticate.assert_awaited_once()
    resources.get_runtime_values.assert_awaited_once_with([16451])
    assert capsys.readouterr().out == "16451: BOOL True\n"


def test_main_reports_errors(tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
    """Controller errors end with status 1."""
    path = tmp_path / "ihcsettings.json"
    path.write_text(json.dumps({"endpoint": "https://192.168.1.3"}), encoding="utf-8")

    async def failing_run(args, settings):
        raise cli.IhcError(1004, "unreachable")

    with patch.object(cli, "run", failing_run):
        assert cli.main(["--settings", str(path), "ping"]) == 1

    assert "unreachable" in capsys.readouterr().out
