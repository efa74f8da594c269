import os
import time
from types import SimpleNamespace
from unittest import mock

import pytest
from django.core.cache import cache

from transcoding.exceptions import StorageError, VideoLocked, VideoNotFound
from transcoding.locks import lock_key
from transcoding.models import Notification, Video
from transcoding.notifications import ConnectionRegistry, Notifier
from transcoding.orchestrator import TranscodeJob, TranscodeOrchestrator
from transcoding.tasks import _purge_workspaces_on_start, enqueue_transcode, transcode_video

from .conftest import SOURCE_KEY, fake_encode, make_probe

MESSAGE = {"videoId": "5b0c3f0e-4d7a-4a8e-9a53-3c1f7f0f2d11", "sourceKey": "uploads/x.mp4", "ownerId": "user-42"}


@pytest.fixture(autouse=True)
def clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def orchestrator_cls():
    with mock.patch("transcoding.tasks.TranscodeOrchestrator") as cls:
        yield cls


def test_task_runs_orchestrator_with_delivery_id(orchestrator_cls):
    orchestrator_cls.return_value.run.return_value = SimpleNamespace(transcoding_status="COMPLETED")

    result = transcode_video.apply(args=[MESSAGE], task_id="task-9", throw=True)

    assert result.get() == {"videoId": MESSAGE["videoId"], "status": "COMPLETED"}
    orchestrator_cls.return_value.run.assert_called_once_with(
        TranscodeJob.from_message(MESSAGE), execution_id="task-9"
    )
    # Lock released afterwards
    assert cache.get(lock_key(MESSAGE["videoId"])) is None


def test_task_releases_lock_and_propagates_missing_video(orchestrator_cls):
    orchestrator_cls.return_value.run.side_effect = VideoNotFound(MESSAGE["videoId"])

    with pytest.raises(VideoNotFound):
        transcode_video.apply(args=[MESSAGE], task_id="task-10", throw=True)

    assert orchestrator_cls.return_value.run.call_count == 1
    assert cache.get(lock_key(MESSAGE["videoId"])) is None


def test_enqueue_sends_job_message(video, settings):
    settings.TRANSCODE_QUEUE = "transcoding"
    with mock.patch("transcoding.tasks.transcode_video") as task:
        enqueue_transcode(video)

    task.apply_async.assert_called_once_with(
        args=[{"videoId": str(video.pk), "sourceKey": video.source_key, "ownerId": "user-42"}],
        queue="transcoding",
    )


def test_worker_start_purges_only_old_workspaces(workspace_root, settings):
    settings.TRANSCODE_LOCK_TIMEOUT = 3600
    crashed = workspace_root / "transcode-crashed"
    crashed.mkdir()
    two_hours_ago = time.time() - 7200
    os.utime(crashed, (two_hours_ago, two_hours_ago))
    (workspace_root / "transcode-running").mkdir()

    _purge_workspaces_on_start()

    assert [p.name for p in workspace_root.iterdir()] == ["transcode-running"]


def test_redelivery_after_worker_crash_finishes_the_job(video, store, workspace_root):
    # The first delivery of task-1 died at 27%, leaving its lock behind
    video.transcoding_status = Video.TranscodingStatus.PROCESSING
    video.transcoding_progress = 27
    video.save()
    cache.set(lock_key(video.pk), "task-1", 3600)
    message = {"videoId": str(video.pk), "sourceKey": SOURCE_KEY, "ownerId": "user-42"}

    def build():
        return TranscodeOrchestrator(
            store=store,
            notifier=Notifier(ConnectionRegistry()),
            probe=make_probe(720),
            encode=fake_encode,
        )

    with mock.patch("transcoding.tasks.TranscodeOrchestrator", side_effect=build):
        result = transcode_video.apply(args=[message], task_id="task-1", throw=True)

    assert result.get() == {"videoId": str(video.pk), "status": "COMPLETED"}
    video.refresh_from_db()
    assert video.transcoding_status == Video.TranscodingStatus.COMPLETED
    assert video.transcoding_progress == 100
    assert list(Notification.objects.values_list("title", flat=True)) == ["Video transcoding completed"]
    assert cache.get(lock_key(video.pk)) is None


def test_contended_task_gives_up_after_lock_waits(orchestrator_cls, settings):
    settings.TRANSCODE_LOCK_MAX_WAITS = 2
    cache.set(lock_key(MESSAGE["videoId"]), "task-other", 3600)

    # Eager retries run in place, so all waits happen inside this call
    result = transcode_video.apply(args=[MESSAGE], task_id="task-3")

    assert result.state == "FAILURE"
    assert isinstance(result.result, VideoLocked)
    orchestrator_cls.return_value.run.assert_not_called()
    assert cache.get(lock_key(MESSAGE["videoId"])) == "task-other"


def test_lock_waits_do_not_spend_storage_retries(orchestrator_cls, settings):
    settings.TRANSCODE_MAX_RETRIES = 2
    orchestrator_cls.return_value.run.side_effect = StorageError("Upload of master.m3u8 failed: timeout")

    # Four earlier lock waits already show up in the retry count
    result = transcode_video.apply(args=[MESSAGE], kwargs={"lock_waits": 4}, retries=4, task_id="task-5")

    assert result.state == "FAILURE"
    assert isinstance(result.result, StorageError)
    # First attempt plus two object-store retries
    assert orchestrator_cls.return_value.run.call_count == 3
    assert cache.get(lock_key(MESSAGE["videoId"])) is None
