"""Unit tests for spawn helpers and process-tree termination."""

import os
import subprocess

import psutil
import pytest
from pytest_mock import MockerFixture

from dcmproc.process import build_env, spawn_kwargs, terminate_tree


class TestBuildEnv:
    def test_empty_overlay_inherits(self) -> None:
        assert build_env({}) is None

    def test_overlay_merges_over_environ(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DCMPROC_INHERITED", "parent")
        env = build_env({"DCMDICTPATH": "/opt/dicom.dic"})
        assert env is not None
        assert env["DCMDICTPATH"] == "/opt/dicom.dic"
        assert env["DCMPROC_INHERITED"] == "parent"

    def test_overlay_wins(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DCMPROC_SHADOWED", "parent")
        env = build_env({"DCMPROC_SHADOWED": "child"})
        assert env is not None
        assert env["DCMPROC_SHADOWED"] == "child"

    def test_replace_uses_overlay_only(self) -> None:
        assert build_env({"ONLY": "1"}, replace=True) == {"ONLY": "1"}
        assert build_env({}, replace=True) == {}


class TestSpawnKwargs:
    def test_posix_new_session(self, mocker: MockerFixture) -> None:
        mocker.patch("dcmproc.process._tree.IS_WINDOWS", new=False)
        assert spawn_kwargs() == {"start_new_session": True}

    @pytest.mark.skipif(os.name != "nt", reason="Windows-only constant")
    def test_windows_process_group(self, mocker: MockerFixture) -> None:
        mocker.patch("dcmproc.process._tree.IS_WINDOWS", new=True)
        assert spawn_kwargs() == {
            "creationflags": subprocess.CREATE_NEW_PROCESS_GROUP  # pyright: ignore[reportAttributeAccessIssue]
        }


class TestTerminateTree:
    def test_signals_descendants_then_root(self, mocker: MockerFixture) -> None:
        order: list[str] = []
        child = mocker.Mock()
        child.terminate.side_effect = lambda: order.append("child")
        root = mocker.Mock()
        root.children.return_value = [child]
        root.terminate.side_effect = lambda: order.append("root")
        process_cls = mocker.patch("dcmproc.process._tree.psutil.Process", return_value=root)

        assert terminate_tree(4242) == 2

        process_cls.assert_called_once_with(4242)
        root.children.assert_called_once_with(recursive=True)
        assert order == ["child", "root"]

    def test_force_kills(self, mocker: MockerFixture) -> None:
        root = mocker.Mock()
        root.children.return_value = []
        mocker.patch("dcmproc.process._tree.psutil.Process", return_value=root)

        assert terminate_tree(4242, force=True) == 1

        root.kill.assert_called_once_with()
        root.terminate.assert_not_called()

    def test_missing_root_is_not_an_error(self, mocker: MockerFixture) -> None:
        mocker.patch(
            "dcmproc.process._tree.psutil.Process",
            side_effect=psutil.NoSuchProcess(4242),
        )
        assert terminate_tree(4242) == 0

    def test_dead_child_is_skipped(self, mocker: MockerFixture) -> None:
        child = mocker.Mock()
        child.terminate.side_effect = psutil.NoSuchProcess(1)
        root = mocker.Mock()
        root.children.return_value = [child]
        mocker.patch("dcmproc.process._tree.psutil.Process", return_value=root)

        assert terminate_tree(4242) == 1
        root.terminate.assert_called_once_with()
