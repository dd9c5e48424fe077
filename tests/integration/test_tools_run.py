"""Integration tests for running DCMTK-style tools from a fake install."""

import sys
from pathlib import Path

import anyio
import pytest

from dcmproc import Err, Ok, ProcessState, ProcessSupervisor, ToolError
from dcmproc.config import DcmtkSettings, ProcessSettings, Settings
from dcmproc.constants import REQUIRED_BINARIES
from dcmproc.exceptions import BinaryNotFoundError, ProcessTimeoutError
from dcmproc.tools import create_server, run_tool

pytestmark = [
    pytest.mark.anyio,
    pytest.mark.skipif(sys.platform == "win32", reason="shebang scripts"),
]

ECHO_TOOL = "import sys\nprint(' '.join(sys.argv[1:]))\n"

TOOLS = {
    "dcmfail": "import sys\nsys.stderr.write('E: cannot open file\\n')\nsys.exit(2)\n",
    "dcmslow": "import time\ntime.sleep(30)\n",
    "dcmrecv": (
        "import sys, time\n"
        "print('I: listening on port ' + sys.argv[-1], flush=True)\n"
        "time.sleep(60)\n"
    ),
}


@pytest.fixture
def fake_dcmtk(tmp_path: Path) -> Path:
    """A directory of executable Python scripts posing as DCMTK tools."""
    bin_dir = tmp_path / "dcmtk" / "bin"
    bin_dir.mkdir(parents=True)
    for name in {*REQUIRED_BINARIES, *TOOLS}:
        script = bin_dir / name
        script.write_text(f"#!{sys.executable}\n{TOOLS.get(name, ECHO_TOOL)}")
        script.chmod(0o755)
    return bin_dir


@pytest.fixture
def settings(fake_dcmtk: Path) -> Settings:
    return Settings(dcmtk=DcmtkSettings(path=str(fake_dcmtk)))


class TestRunTool:
    async def test_success(self, settings: Settings) -> None:
        result = await run_tool("dcmdump", ["+P", "0010,0010", "a.dcm"], settings=settings)

        assert isinstance(result, Ok)
        assert result.value.exit_code == 0
        assert result.value.stdout.strip() == "+P 0010,0010 a.dcm"

    async def test_failure_becomes_tool_error(self, settings: Settings) -> None:
        result = await run_tool("dcmfail", ["in.dcm"], settings=settings)

        assert isinstance(result, Err)
        assert isinstance(result.error, ToolError)
        assert str(result.error) == (
            "dcmfail failed (exit code 2) | args: in.dcm | stderr: E: cannot open file"
        )
        assert result.error.exit_code == 2

    async def test_timeout_from_settings(self, fake_dcmtk: Path) -> None:
        settings = Settings(
            dcmtk=DcmtkSettings(path=str(fake_dcmtk)),
            process=ProcessSettings(default_timeout_ms=300),
        )

        result = await run_tool("dcmslow", settings=settings)

        assert isinstance(result, Err)
        assert isinstance(result.error, ProcessTimeoutError)
        assert result.error.timeout_ms == 300

    async def test_missing_install(self, tmp_path: Path) -> None:
        settings = Settings(dcmtk=DcmtkSettings(path=str(tmp_path)))

        result = await run_tool("dcmdump", settings=settings)

        assert isinstance(result, Err)
        assert isinstance(result.error, BinaryNotFoundError)
        assert result.error.tool_name == "dcmdump"


class TestCreateServer:
    async def test_listener_becomes_ready(self, settings: Settings) -> None:
        built = create_server(
            "dcmrecv",
            ["--config-file", "storescp.cfg", "11112"],
            ready=lambda line: "listening" in line,
            settings=settings,
        )
        assert isinstance(built, Ok)
        server = built.value
        assert isinstance(server, ProcessSupervisor)
        assert server.config.start_timeout_ms == settings.process.start_timeout_ms

        async with server:
            with anyio.fail_after(10):
                assert await server.start() == Ok(None)
            assert server.state is ProcessState.RUNNING

        assert server.state is ProcessState.STOPPED

    def test_missing_install(self, tmp_path: Path) -> None:
        settings = Settings(dcmtk=DcmtkSettings(path=str(tmp_path)))
        built = create_server("dcmrecv", settings=settings)
        assert isinstance(built, Err)
        assert isinstance(built.error, BinaryNotFoundError)
