"""Unit tests for DCMTK binary discovery."""

from pathlib import Path

import pytest
from pytest_mock import MockerFixture

from dcmproc import Err, Ok
from dcmproc.config import DcmtkSettings, Settings
from dcmproc.constants import REQUIRED_BINARIES
from dcmproc.exceptions import BinaryNotFoundError
from dcmproc.tools import (
    binary_name,
    clear_dcmtk_path_cache,
    find_dcmtk_path,
    has_required_binaries,
    resolve_binary,
)

DEFAULT = Settings()


def make_install(directory: Path, names: tuple[str, ...] = REQUIRED_BINARIES) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    for name in names:
        (directory / binary_name(name)).write_text("")
    return directory


@pytest.fixture(autouse=True)
def no_system_install(mocker: MockerFixture, monkeypatch: pytest.MonkeyPatch) -> None:
    """Hide any DCMTK installed on the machine running the tests."""
    monkeypatch.delenv("DCMTK_PATH", raising=False)
    _ = mocker.patch("dcmproc.tools._resolve.IS_WINDOWS", new=False)
    _ = mocker.patch("dcmproc.tools._resolve.UNIX_SEARCH_PATHS", new=())
    _ = mocker.patch("dcmproc.tools._resolve.shutil.which", return_value=None)


class TestHasRequiredBinaries:
    def test_complete_install(self, tmp_path: Path) -> None:
        assert has_required_binaries(make_install(tmp_path / "bin"))

    def test_partial_install(self, tmp_path: Path) -> None:
        install = make_install(tmp_path / "bin", REQUIRED_BINARIES[:-1])
        assert not has_required_binaries(install)

    def test_missing_directory(self, tmp_path: Path) -> None:
        assert not has_required_binaries(tmp_path / "absent")


class TestFindDcmtkPath:
    def test_not_found(self) -> None:
        result = find_dcmtk_path(settings=DEFAULT)
        assert isinstance(result, Err)
        assert isinstance(result.error, BinaryNotFoundError)
        assert "DCMTK binaries not found" in str(result.error)

    def test_env_var(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        install = make_install(tmp_path / "env")
        monkeypatch.setenv("DCMTK_PATH", str(install))
        assert find_dcmtk_path(settings=DEFAULT) == Ok(install)

    def test_env_var_set_but_incomplete(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch, mocker: MockerFixture
    ) -> None:
        incomplete = make_install(tmp_path / "env", ("dcmdump",))
        make_install(tmp_path / "known")
        _ = mocker.patch(
            "dcmproc.tools._resolve.UNIX_SEARCH_PATHS", new=(tmp_path / "known",)
        )
        monkeypatch.setenv("DCMTK_PATH", str(incomplete))

        result = find_dcmtk_path(settings=DEFAULT)

        assert isinstance(result, Err)
        assert str(result.error) == (
            f'DCMTK_PATH="{incomplete}" is set but required binaries are missing'
        )

    def test_settings_path_takes_precedence(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        pinned = make_install(tmp_path / "pinned")
        monkeypatch.setenv("DCMTK_PATH", str(make_install(tmp_path / "env")))
        settings = Settings(dcmtk=DcmtkSettings(path=str(pinned)))

        assert find_dcmtk_path(settings=settings) == Ok(pinned)

    def test_known_locations_in_order(
        self, tmp_path: Path, mocker: MockerFixture
    ) -> None:
        second = make_install(tmp_path / "second")
        third = make_install(tmp_path / "third")
        _ = mocker.patch(
            "dcmproc.tools._resolve.UNIX_SEARCH_PATHS",
            new=(tmp_path / "first", second, third),
        )
        assert find_dcmtk_path(settings=DEFAULT) == Ok(second)

    def test_system_path(self, tmp_path: Path, mocker: MockerFixture) -> None:
        install = make_install(tmp_path / "onpath")
        which = mocker.patch(
            "dcmproc.tools._resolve.shutil.which",
            return_value=str(install / "dcm2json"),
        )
        assert find_dcmtk_path(settings=DEFAULT) == Ok(install)
        which.assert_called_once_with("dcm2json")

    def test_system_path_needs_all_binaries(
        self, tmp_path: Path, mocker: MockerFixture
    ) -> None:
        install = make_install(tmp_path / "onpath", ("dcm2json",))
        _ = mocker.patch(
            "dcmproc.tools._resolve.shutil.which",
            return_value=str(install / "dcm2json"),
        )
        assert isinstance(find_dcmtk_path(settings=DEFAULT), Err)

    def test_result_is_cached(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        first = make_install(tmp_path / "first")
        second = make_install(tmp_path / "second")
        monkeypatch.setenv("DCMTK_PATH", str(first))
        assert find_dcmtk_path(settings=DEFAULT) == Ok(first)

        monkeypatch.setenv("DCMTK_PATH", str(second))
        assert find_dcmtk_path(settings=DEFAULT) == Ok(first)
        assert find_dcmtk_path(no_cache=True, settings=DEFAULT) == Ok(second)

        clear_dcmtk_path_cache()
        monkeypatch.delenv("DCMTK_PATH")
        assert isinstance(find_dcmtk_path(settings=DEFAULT), Err)

    def test_failures_are_not_cached(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        assert isinstance(find_dcmtk_path(settings=DEFAULT), Err)
        install = make_install(tmp_path / "later")
        monkeypatch.setenv("DCMTK_PATH", str(install))
        assert find_dcmtk_path(settings=DEFAULT) == Ok(install)


class TestResolveBinary:
    def test_joins_tool_name(self, tmp_path: Path) -> None:
        install = make_install(tmp_path / "bin")
        settings = Settings(dcmtk=DcmtkSettings(path=str(install)))
        assert resolve_binary("storescp", settings=settings) == Ok(install / "storescp")

    def test_windows_suffix(self, mocker: MockerFixture) -> None:
        _ = mocker.patch("dcmproc.tools._resolve.IS_WINDOWS", new=True)
        assert binary_name("dcmdump") == "dcmdump.exe"

    def test_error_names_tool(self) -> None:
        result = resolve_binary("dcmrecv", settings=DEFAULT)
        assert isinstance(result, Err)
        assert isinstance(result.error, BinaryNotFoundError)
        assert result.error.tool_name == "dcmrecv"
