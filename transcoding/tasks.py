from celery import shared_task
from celery.signals import worker_ready
from celery.utils.log import get_task_logger
from celery.utils.time import get_exponential_backoff_interval
from django.conf import settings

from .exceptions import StorageError, VideoLocked, VideoNotFound
from .locks import video_lock
from .models import Video
from .orchestrator import TranscodeJob, TranscodeOrchestrator
from .workspace import purge_stale_workspaces

logger = get_task_logger(__name__)

STORAGE_RETRY_BACKOFF_MAX = 600


@shared_task(
    bind=True,
    acks_late=True,
    reject_on_worker_lost=True,
    # Both retry budgets are enforced below
    max_retries=None,
)
def transcode_video(self, message: dict, lock_waits: int = 0):
    """
    Queue entry point. message is the job {videoId, sourceKey, ownerId}.

    Object-store failures are retried with backoff, up to TRANSCODE_MAX_RETRIES.
    Finding the video locked by another job waits and retries, up to
    TRANSCODE_LOCK_MAX_WAITS; those waits do not count against the object-store
    budget. Every other failure, VideoNotFound included, ends the task.
    """
    job = TranscodeJob.from_message(message)
    logger.info(f"Task {self.request.id} processing video {job.video_id}")

    with video_lock(job.video_id, token=self.request.id) as acquired:
        if not acquired:
            if lock_waits >= settings.TRANSCODE_LOCK_MAX_WAITS:
                raise VideoLocked(job.video_id)
            raise self.retry(
                kwargs={"lock_waits": lock_waits + 1},
                countdown=settings.TRANSCODE_LOCK_RETRY_SECONDS,
            )
        try:
            video = TranscodeOrchestrator().run(job, execution_id=self.request.id)
        except VideoNotFound:
            logger.error(f"Dropping job for missing video {job.video_id}")
            raise
        except StorageError as e:
            storage_retries = self.request.retries - lock_waits
            if storage_retries >= settings.TRANSCODE_MAX_RETRIES:
                raise
            countdown = get_exponential_backoff_interval(
                factor=1,
                retries=storage_retries,
                maximum=STORAGE_RETRY_BACKOFF_MAX,
                full_jitter=True,
            )
            raise self.retry(exc=e, countdown=countdown)

    return {"videoId": job.video_id, "status": str(video.transcoding_status)}


def enqueue_transcode(video: Video):
    """Send a transcode job for a video whose source is already in object storage."""
    job = TranscodeJob(video_id=str(video.pk), source_key=video.source_key, owner_id=str(video.owner_id))
    result = transcode_video.apply_async(args=[job.as_message()], queue=settings.TRANSCODE_QUEUE)
    logger.info(f"Queued transcode of video {video.pk} as task {result.id}")
    return result


@worker_ready.connect
def _purge_workspaces_on_start(**kwargs):
    purge_stale_workspaces(older_than=settings.TRANSCODE_LOCK_TIMEOUT)
