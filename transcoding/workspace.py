"""Job-scoped scratch directories for intermediate transcode files."""
import logging
import shutil
import time
from contextlib import contextmanager
from pathlib import Path

from django.conf import settings

from .exceptions import CleanupError
from .utils import sanitize_name

logger = logging.getLogger(__name__)

WORKSPACE_PREFIX = "transcode-"


def workspace_name(video_id) -> str:
    return f"{WORKSPACE_PREFIX}{sanitize_name(video_id)}"


def remove_workspace(path) -> None:
    """Delete a workspace and everything in it. Raises CleanupError on failure."""
    path = Path(path)
    if not path.exists():
        return
    try:
        shutil.rmtree(path)
    except OSError as e:
        raise CleanupError(f"Could not remove workspace {path}: {e}") from e
    logger.info(f"Cleaned up workspace {path}")


@contextmanager
def scratch_workspace(video_id, root=None):
    """
    Yield a private directory for one video's job and remove it on exit,
    whatever the outcome. A leftover directory from a crashed run of the same
    video is wiped first. A failed removal is logged and never replaces the
    job's own error.
    """
    root = Path(root or settings.TRANSCODE_WORKSPACE_ROOT)
    path = root / workspace_name(video_id)
    if path.exists():
        logger.warning(f"Removing stale workspace {path}")
        shutil.rmtree(path)
    path.mkdir(parents=True)
    try:
        yield path
    finally:
        try:
            remove_workspace(path)
        except CleanupError as e:
            logger.error(str(e))


def purge_stale_workspaces(root=None, older_than: int | None = None) -> int:
    """
    Remove workspaces orphaned by a previous worker crash. With older_than,
    only directories untouched for that many seconds go, so a job still running
    in another worker on the same host keeps its files.
    Returns how many were removed.
    """
    root = Path(root or settings.TRANSCODE_WORKSPACE_ROOT)
    if not root.is_dir():
        return 0
    cutoff = time.time() - older_than if older_than else None
    removed = 0
    for item in root.iterdir():
        if not (item.is_dir() and item.name.startswith(WORKSPACE_PREFIX)):
            continue
        if cutoff is not None and item.stat().st_mtime > cutoff:
            continue
        try:
            remove_workspace(item)
        except CleanupError as e:
            logger.error(str(e))
        else:
            removed += 1
    if removed:
        logger.info(f"Purged {removed} stale workspace(s) under {root}")
    return removed
