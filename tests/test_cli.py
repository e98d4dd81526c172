"""Unit tests for p2plauncher.cli."""

import json
import sys
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from p2plauncher.cli import entrypoint, main
from p2plauncher.models import FALLBACK_RESULT, DiscoveryResult, LauncherConfig


def _mock_host(selected=None, launched=True, service=FALLBACK_RESULT):
    host = MagicMock()
    host.start.return_value = service
    host.bridge.select_executable_file = AsyncMock(return_value=selected)
    host.bridge.launch_in_sandbox = AsyncMock(return_value=launched)
    host_cls = MagicMock()
    host_cls.return_value.__enter__.return_value = host
    return host_cls, host


def _launch_patches(host_cls, config=None):
    return patch.multiple(
        "p2plauncher.cli.launch",
        LauncherHost=host_cls,
        load_config=MagicMock(return_value=config or LauncherConfig()),
    )


# ---------------------------------------------------------------------------
# launch
# ---------------------------------------------------------------------------


class TestLaunchCommand:
    def test_launches_given_path(self, capsys):
        host_cls, host = _mock_host()
        with _launch_patches(host_cls):
            assert main(["launch", "/games/war3"]) == 0

        host.bridge.launch_in_sandbox.assert_awaited_once_with("/games/war3")
        host.bridge.select_executable_file.assert_not_awaited()
        out = capsys.readouterr().out
        assert "Companion service: 127.0.0.1:8080" in out
        assert "cleaned up" in out

    def test_bare_invocation_routes_to_launch(self):
        host_cls, host = _mock_host()
        with _launch_patches(host_cls):
            assert main(["/games/war3"]) == 0
        host.bridge.launch_in_sandbox.assert_awaited_once_with("/games/war3")

    def test_prompts_when_no_path_configured(self):
        host_cls, host = _mock_host(selected="/games/picked")
        with _launch_patches(host_cls):
            assert main(["launch"]) == 0
        host.bridge.launch_in_sandbox.assert_awaited_once_with("/games/picked")

    def test_uses_configured_executable(self):
        host_cls, host = _mock_host()
        with _launch_patches(host_cls, LauncherConfig(executable_path="/games/saved")):
            assert main(["launch"]) == 0
        host.bridge.launch_in_sandbox.assert_awaited_once_with("/games/saved")

    def test_cancelled_selection_returns_one(self, capsys):
        host_cls, host = _mock_host(selected=None)
        with _launch_patches(host_cls):
            assert main(["launch"]) == 1
        host.bridge.launch_in_sandbox.assert_not_awaited()
        assert "no executable selected" in capsys.readouterr().err

    def test_failed_launch_returns_one(self, capsys):
        host_cls, _host = _mock_host(launched=False)
        with _launch_patches(host_cls):
            assert main(["launch", "/games/war3"]) == 1
        assert "could not launch" in capsys.readouterr().err

    def test_skip_discovery(self):
        host_cls, host = _mock_host()
        with _launch_patches(host_cls):
            main(["launch", "--skip-discovery", "/games/war3"])
        host.start.assert_not_called()

    def test_args_override_configured_arguments(self):
        host_cls, _host = _mock_host()
        with _launch_patches(host_cls):
            main(["launch", "--args=-window -opengl", "/games/war3"])
        config = host_cls.call_args.args[0]
        assert config.launch_arguments == ["-window", "-opengl"]

    def test_installs_signal_handlers(self):
        host_cls, host = _mock_host()
        with _launch_patches(host_cls):
            main(["launch", "/games/war3"])
        host.install_signal_handlers.assert_called_once_with()


# ---------------------------------------------------------------------------
# discover
# ---------------------------------------------------------------------------


class TestDiscoverCommand:
    def _run(self, argv, result=FALLBACK_RESULT, config=None):
        mock_discover = MagicMock(return_value=result)
        with patch.multiple(
            "p2plauncher.cli.discover",
            discover=mock_discover,
            load_config=MagicMock(return_value=config or LauncherConfig()),
        ):
            code = main(["discover", *argv])
        return code, mock_discover

    def test_prints_host_and_port(self, capsys):
        code, _ = self._run([], DiscoveryResult(host="10.0.0.5", port=9090))
        assert code == 0
        assert capsys.readouterr().out.strip() == "10.0.0.5:9090"

    def test_json_output_uses_wire_names(self, capsys):
        self._run(["--json"], DiscoveryResult(host="10.0.0.5", port=9090))
        assert json.loads(capsys.readouterr().out) == {"ip": "10.0.0.5", "port": 9090}

    def test_flags_override_config(self):
        _, mock_discover = self._run(
            ["--attempts", "2", "--delay", "0.5", "--url", "http://h:1/server-info"]
        )
        policy, url = mock_discover.call_args.args
        assert policy.max_attempts == 2
        assert policy.delay_between_attempts == 0.5
        assert url == "http://h:1/server-info"

    def test_invalid_attempts_is_usage_error(self):
        with pytest.raises(SystemExit) as exc_info:
            self._run(["--attempts", "0"])
        assert exc_info.value.code == 2


# ---------------------------------------------------------------------------
# configure
# ---------------------------------------------------------------------------


class TestConfigureCommand:
    def _run(self, argv, existing=None):
        saved = {}

        def fake_save(config):
            saved["config"] = config
            return "/home/user/.p2plauncher/config.json"

        with patch.multiple(
            "p2plauncher.cli.configure",
            load_config=MagicMock(return_value=existing or LauncherConfig()),
            save_config=MagicMock(side_effect=fake_save),
        ):
            code = main(["configure", *argv])
        return code, saved.get("config")

    def test_updates_selected_fields(self, capsys):
        code, config = self._run(["--attempts", "7", "--cpu", "1", "--hide-console"])
        assert code == 0
        assert config.max_attempts == 7
        assert config.cpu_index == 1
        assert config.show_console is False
        assert "Configuration saved" in capsys.readouterr().out

    def test_keeps_existing_values(self):
        _, config = self._run(["--cpu", "2"], LauncherConfig(discovery_url="http://h:1/server-info"))
        assert config.discovery_url == "http://h:1/server-info"

    def test_launch_args_are_split(self):
        _, config = self._run(["--launch-args=-window -opengl"])
        assert config.launch_arguments == ["-window", "-opengl"]

    def test_invalid_value_is_reported(self, capsys):
        code, config = self._run(["--attempts", "0"])
        assert code == 1
        assert config is None
        assert "Error:" in capsys.readouterr().err

    def test_missing_executable_is_reported(self, capsys, tmp_path):
        code, _ = self._run(["--executable", str(tmp_path / "missing")])
        assert code == 1
        assert "not found" in capsys.readouterr().err

    def test_clear_executable(self):
        _, config = self._run(["--clear-executable"], LauncherConfig(executable_path="/g/war3"))
        assert config.executable_path is None

    def test_reset_ignores_stored_config(self):
        _, config = self._run(["--reset"], LauncherConfig(cpu_index=5))
        assert config == LauncherConfig()


# ---------------------------------------------------------------------------
# argparse edge cases and entrypoint
# ---------------------------------------------------------------------------


class TestArgparse:
    def test_version_output_contains_version_string(self, capsys):
        with pytest.raises(SystemExit):
            main(["discover", "--version"])
        assert "0.1.0" in capsys.readouterr().out

    def test_unknown_flag_exits_nonzero(self):
        with pytest.raises(SystemExit) as exc_info:
            main(["configure", "--bogus"])
        assert exc_info.value.code != 0


class TestEntrypoint:
    def test_entrypoint_exits_with_command_code(self):
        host_cls, _host = _mock_host(launched=False)
        with _launch_patches(host_cls):
            with patch.object(sys, "argv", ["p2plauncher", "launch", "/games/war3"]):
                with pytest.raises(SystemExit) as exc_info:
                    entrypoint()
        assert exc_info.value.code == 1
