from __future__ import annotations

import shutil
import tempfile
from pathlib import Path

import pytest

from evergreen_installer.application.exceptions import WorkspaceError
from evergreen_installer.infrastructure.workspace import DEFAULT_DIR_NAME, TempWorkspace


def test_prepare_purges_leftovers_from_an_aborted_run(tmp_path: Path):
    path = tmp_path / "work"
    (path / "nested").mkdir(parents=True)
    (path / "nested" / "old.msi").write_bytes(b"old")

    assert TempWorkspace(path).prepare() == path
    assert list(path.iterdir()) == []


def test_context_manager_removes_the_directory_even_on_error(tmp_path: Path):
    path = tmp_path / "work"

    with pytest.raises(RuntimeError):
        with TempWorkspace(path) as workspace_dir:
            (workspace_dir / "setup.exe").write_bytes(b"MZ")
            raise RuntimeError("boom")

    assert not path.exists()


def test_remove_failure_is_logged_not_raised(tmp_path: Path, monkeypatch, caplog):
    path = tmp_path / "work"
    workspace = TempWorkspace(path)
    workspace.prepare()

    def locked(*args, **kwargs):
        raise PermissionError("file in use")

    monkeypatch.setattr(shutil, "rmtree", locked)
    monkeypatch.setattr(TempWorkspace._delete_tree.retry, "sleep", lambda seconds: None)

    workspace.remove()

    assert path.exists()
    assert "file in use" in caplog.text
    assert "_delete_tree hit a locked file" in caplog.text


def test_prepare_failure_raises_workspace_error(tmp_path: Path):
    blocker = tmp_path / "file"
    blocker.write_text("x")

    with pytest.raises(WorkspaceError):
        TempWorkspace(blocker / "work").prepare()


def test_default_location_is_under_the_temp_dir():
    assert TempWorkspace().path == Path(tempfile.gettempdir()) / DEFAULT_DIR_NAME
