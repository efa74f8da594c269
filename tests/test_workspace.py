from unittest import mock

import pytest

from transcoding.utils import sanitize_name
from transcoding.workspace import purge_stale_workspaces, scratch_workspace, workspace_name


def test_workspace_name_is_sanitized():
    assert workspace_name("../etc/passwd") == "transcode-.._etc_passwd"
    assert sanitize_name(b"a b/c") == "a_b_c"


def test_workspace_removed_after_success(workspace_root):
    with scratch_workspace("vid-1") as path:
        (path / "720p.mp4").write_bytes(b"data")
        assert path.parent == workspace_root
    assert not path.exists()


def test_workspace_removed_after_error(workspace_root):
    with pytest.raises(RuntimeError):
        with scratch_workspace("vid-1") as path:
            (path / "source.mp4").write_bytes(b"data")
            raise RuntimeError("boom")
    assert not path.exists()


def test_leftover_workspace_is_wiped_on_reuse(workspace_root):
    stale = workspace_root / "transcode-vid-1"
    stale.mkdir()
    (stale / "old.mp4").write_bytes(b"old")

    with scratch_workspace("vid-1") as path:
        assert list(path.iterdir()) == []


def test_cleanup_failure_does_not_mask_original_error(workspace_root, caplog):
    with mock.patch("transcoding.workspace.shutil.rmtree", side_effect=PermissionError("busy")):
        with pytest.raises(ValueError, match="original"):
            with scratch_workspace("vid-2"):
                raise ValueError("original")
    assert "Could not remove workspace" in caplog.text


def test_purge_stale_workspaces_only_touches_ours(workspace_root):
    (workspace_root / "transcode-a").mkdir()
    (workspace_root / "transcode-b").mkdir()
    (workspace_root / "unrelated").mkdir()

    assert purge_stale_workspaces() == 2
    assert [p.name for p in workspace_root.iterdir()] == ["unrelated"]
