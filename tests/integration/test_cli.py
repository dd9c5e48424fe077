"""Integration tests for the dcmproc command-line interface."""

import sys
from collections.abc import Callable
from pathlib import Path

import pytest
from rich.console import Console

from dcmproc.cli import ExitCode, create_app
from dcmproc.config import DcmtkSettings, Settings, get_settings, set_settings
from dcmproc.constants import REQUIRED_BINARIES


@pytest.fixture
def dcmproc_cli(console: Console) -> Callable[..., int]:
    """Run the CLI and return its exit code (0 if no SystemExit)."""
    app = create_app(console=console, error_console=console)

    def _run(*args: str) -> int:
        try:
            app(args)
        except SystemExit as e:
            return e.code if isinstance(e.code, int) else 1
        else:
            return 0

    return _run


@pytest.fixture
def dcmproc_meta(console: Console) -> Callable[..., int]:
    """Run the CLI through its global options and return the exit code."""
    app = create_app(console=console, error_console=console)

    def _run(*args: str) -> int:
        try:
            app.meta(args)
        except SystemExit as e:
            return e.code if isinstance(e.code, int) else 1
        else:
            return 0

    return _run


class TestExec:
    def test_relays_output(
        self, dcmproc_cli: Callable[..., int], python: str, capsys: pytest.CaptureFixture[str]
    ) -> None:
        code = dcmproc_cli("exec", "--", python, "-c", "print('hello dicom')")

        assert code == 0
        assert "hello dicom" in capsys.readouterr().out

    def test_propagates_exit_code(
        self, dcmproc_cli: Callable[..., int], python: str
    ) -> None:
        assert dcmproc_cli("exec", "--", python, "-c", "raise SystemExit(5)") == 5

    def test_timeout(
        self, dcmproc_cli: Callable[..., int], python: str, capsys: pytest.CaptureFixture[str]
    ) -> None:
        code = dcmproc_cli(
            "exec", "--timeout", "300", "--", python, "-c", "import time; time.sleep(30)"
        )

        assert code == ExitCode.TIMEOUT
        assert "timed out after 300ms" in capsys.readouterr().out

    def test_missing_program(self, dcmproc_cli: Callable[..., int]) -> None:
        code = dcmproc_cli("exec", "--", "/nonexistent/dcmtk/bin/dcmdump")
        assert code == ExitCode.COMMAND_NOT_FOUND

    def test_no_command(self, dcmproc_cli: Callable[..., int]) -> None:
        assert dcmproc_cli("exec") == ExitCode.FAILURE


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals")
class TestServe:
    def test_runs_until_exit(
        self, dcmproc_cli: Callable[..., int], python: str, capsys: pytest.CaptureFixture[str]
    ) -> None:
        script = "print('READY', flush=True)"

        code = dcmproc_cli("serve", "--ready", "^READY$", "--name", "echo", "--", python, "-c", script)

        out = capsys.readouterr().out
        assert code == 0
        assert "] READY" in out
        assert "[echo] STARTED" in out
        assert "[echo] STOPPED" in out

    def test_startup_timeout(
        self, dcmproc_cli: Callable[..., int], python: str
    ) -> None:
        code = dcmproc_cli(
            "serve",
            "--ready",
            "never",
            "--start-timeout",
            "300",
            "--",
            python,
            "-c",
            "import time; time.sleep(30)",
        )
        assert code == ExitCode.TIMEOUT

    def test_reports_child_failure(
        self, dcmproc_cli: Callable[..., int], python: str
    ) -> None:
        assert dcmproc_cli("serve", "--", python, "-c", "raise SystemExit(6)") == 6

    def test_invalid_pattern(self, dcmproc_cli: Callable[..., int], python: str) -> None:
        assert dcmproc_cli("serve", "--ready", "(", "--", python) == ExitCode.FAILURE


class TestWhich:
    def test_prints_install_and_tool(
        self,
        dcmproc_cli: Callable[..., int],
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        for name in REQUIRED_BINARIES:
            (tmp_path / name).write_text("")
        set_settings(Settings(dcmtk=DcmtkSettings(path=str(tmp_path))))

        assert dcmproc_cli("which") == 0
        assert dcmproc_cli("which", "storescp") == 0

        lines = capsys.readouterr().out.splitlines()
        assert lines == [str(tmp_path), str(tmp_path / "storescp")]

    def test_not_found(
        self, dcmproc_cli: Callable[..., int], tmp_path: Path
    ) -> None:
        set_settings(Settings(dcmtk=DcmtkSettings(path=str(tmp_path))))
        assert dcmproc_cli("which", "--no-cache") == ExitCode.NOT_FOUND


class TestGlobalOptions:
    def test_config_file_applies(
        self,
        dcmproc_meta: Callable[..., int],
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        install = tmp_path / "bin"
        install.mkdir()
        for name in REQUIRED_BINARIES:
            (install / name).write_text("")
        config = tmp_path / "dcmproc.toml"
        config.write_text(f'[dcmtk]\npath = "{install}"\n')
        monkeypatch.setattr(
            "dcmproc.config._load.get_user_config_path",
            lambda: tmp_path / "absent.toml",
        )

        assert dcmproc_meta("--config", str(config), "which") == 0
        assert capsys.readouterr().out.strip() == str(install)
        assert get_settings().dcmtk.path == str(install)

    def test_missing_config_file(
        self, dcmproc_meta: Callable[..., int], tmp_path: Path
    ) -> None:
        code = dcmproc_meta("--config", str(tmp_path / "absent.toml"), "which")
        assert code == ExitCode.CONFIG_ERROR
