"""Tests for the engine-manager command line."""

import signal
import threading

import pytest

from engine_manager import __main__ as cli

WORKERS_YAML = """\
- name: echo.server
  server_class: command
  pidfile: {pidfile}
  command: ["sh", "-c", "sleep 60 >/dev/null 2>&1 & echo $! > {{pidfile}}"]
"""


@pytest.fixture
def conf(tmp_path, monkeypatch):
    """Write a one-worker configuration and speed up polling."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("ENGINE_MANAGER_CONF", raising=False)
    monkeypatch.setenv("ENGINE_MANAGER_PIDFILE_POLL_INTERVAL", "0.05")
    monkeypatch.setenv("ENGINE_MANAGER_LIVENESS_POLL_INTERVAL", "0.05")
    monkeypatch.setenv("ENGINE_MANAGER_TERMINATION_POLL_INTERVAL", "0.05")
    monkeypatch.setenv("ENGINE_MANAGER_MAX_PIDFILE_ATTEMPTS", "100")
    # Keep global structlog configuration untouched between tests
    monkeypatch.setattr(cli, "setup_logging", lambda *args, **kwargs: None)

    path = tmp_path / "workers.yml"
    path.write_text(WORKERS_YAML.format(pidfile=tmp_path / "echo.pid"))
    return path


class TestCli:
    """Test start, stop and status through main()."""

    def test_start_stop(self, conf, tmp_path):
        pidfile = tmp_path / "echo.pid"

        assert cli.main(["--conf", str(conf), "start"]) == cli.EXIT_OK
        assert pidfile.exists()

        assert cli.main(["--conf", str(conf), "stop"]) == cli.EXIT_OK
        assert not pidfile.exists()

    def test_conf_from_environment(self, conf, monkeypatch):
        monkeypatch.setenv("ENGINE_MANAGER_CONF", str(conf))

        assert cli.main(["stop"]) == cli.EXIT_OK

    def test_status(self, conf, capsys):
        """Test that status prints the report and fails when workers are down."""
        assert cli.main(["--conf", str(conf), "status"]) == cli.EXIT_FAILED
        assert "echo.server: stopped" in capsys.readouterr().out

        assert cli.main(["--conf", str(conf), "start"]) == cli.EXIT_OK
        try:
            assert cli.main(["--conf", str(conf), "status"]) == cli.EXIT_OK
            assert "echo.server: running (pid" in capsys.readouterr().out
        finally:
            cli.main(["--conf", str(conf), "stop"])

    def test_start_failure_exit_code(self, tmp_path, conf):
        failing = tmp_path / "failing.yml"
        failing.write_text(
            "- name: bad\n"
            "  server_class: command\n"
            f"  pidfile: {tmp_path / 'bad.pid'}\n"
            "  command: ['false']\n"
        )

        assert cli.main(["--conf", str(failing), "start"]) == cli.EXIT_FAILED

    def test_missing_config_file(self, conf, tmp_path):
        assert cli.main(["--conf", str(tmp_path / "nope.yml"), "start"]) == cli.EXIT_CONFIG

    def test_undecodable_config_file(self, conf, tmp_path):
        path = tmp_path / "binary.yml"
        path.write_bytes(b"\xff\xfe\x00garbage")

        assert cli.main(["--conf", str(path), "start"]) == cli.EXIT_CONFIG

    def test_invalid_settings(self, conf, monkeypatch):
        monkeypatch.setenv("ENGINE_MANAGER_LOG_FORMAT", "xml")

        assert cli.main(["--conf", str(conf), "status"]) == cli.EXIT_CONFIG

    def test_conf_required(self, conf):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["start"])

        assert exc_info.value.code == 2

    def test_command_required(self, conf):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["--conf", str(conf)])

        assert exc_info.value.code == 2

    def test_signal_handlers_restored(self, conf):
        """Test that SIGINT/SIGTERM handling is handed back after the command."""
        before = signal.getsignal(signal.SIGINT)

        cli.main(["--conf", str(conf), "stop"])

        assert signal.getsignal(signal.SIGINT) is before

    def test_signal_sets_cancel_event(self):
        cancel = threading.Event()
        previous = cli._install_signal_handlers(cancel)
        try:
            signal.getsignal(signal.SIGTERM)(signal.SIGTERM, None)
        finally:
            cli._restore_signal_handlers(previous)

        assert cancel.is_set()
