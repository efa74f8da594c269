"""
Drives a single video's transcode job:

    download -> probe -> plan -> (encode, upload, record) x N -> manifest -> COMPLETED

Status, progress and error live on the Video row and are written only from here
while a job runs. Every run ends with exactly one notification to the owner,
and any failure is re-raised so the queue can decide about redelivery.
"""
import logging
from dataclasses import dataclass
from pathlib import Path

from django.core.exceptions import ValidationError

from .encoder import encode_rendition
from .exceptions import PlanningError, VideoNotFound
from .manifest import MANIFEST_FILENAME, ManifestEntry, build_manifest
from .models import QualityVariant, Video
from .notifications import TRANSCODING_EVENT, Notifier
from .probe import probe_media
from .qualities import select_renditions
from .s3 import CONTENT_TYPES, ObjectStore
from .utils import manifest_key, rendition_key, round_half_up
from .workspace import scratch_workspace

logger = logging.getLogger(__name__)

# Share of the progress range spent encoding; the rest covers the manifest.
ENCODE_PROGRESS_SHARE = 80
MAX_ERROR_LENGTH = 4000

Status = Video.TranscodingStatus


@dataclass(frozen=True)
class TranscodeJob:
    video_id: str
    source_key: str
    owner_id: str

    @classmethod
    def from_message(cls, message: dict) -> "TranscodeJob":
        return cls(
            video_id=str(message["videoId"]),
            source_key=message["sourceKey"],
            owner_id=str(message["ownerId"]),
        )

    def as_message(self) -> dict:
        return {"videoId": self.video_id, "sourceKey": self.source_key, "ownerId": self.owner_id}


def encode_progress(completed: int, total: int) -> int:
    """Progress after `completed` of `total` renditions, within the encode share."""
    if total <= 0:
        return 0
    return round_half_up(completed / total * ENCODE_PROGRESS_SHARE)


_UNSET = object()


def _update(video: Video, *, status=None, progress=None, error=_UNSET, **fields):
    update_fields = ["updated_at"]
    if status:
        video.transcoding_status = status
        update_fields.append("transcoding_status")
    if progress is not None:
        video.transcoding_progress = max(0, min(100, int(progress)))
        update_fields.append("transcoding_progress")
    if error is not _UNSET:
        video.transcoding_error = error
        update_fields.append("transcoding_error")
    for name, value in fields.items():
        setattr(video, name, value)
        update_fields.append(name)
    video.save(update_fields=update_fields)


class TranscodeOrchestrator:
    def __init__(
        self,
        store=None,
        notifier=None,
        probe=probe_media,
        encode=encode_rendition,
        plan=select_renditions,
        workspace_root=None,
    ):
        self.store = store if store is not None else ObjectStore()
        self.notifier = notifier if notifier is not None else Notifier()
        self.probe = probe
        self.encode = encode
        self.plan = plan
        self.workspace_root = workspace_root

    def run(self, job: TranscodeJob, execution_id: str | None = None) -> Video:
        """
        Execute the whole pipeline for one job.

        execution_id identifies this delivery of the job (the queue's task id);
        a redelivery carrying the same id does not notify the owner twice.

        Raises:
            VideoNotFound: no video row for job.video_id. Nothing is written.
            TranscodeError (or any other exception): after the video has been
                marked FAILED and the owner notified.
        """
        try:
            video = Video.objects.get(pk=job.video_id)
        except (Video.DoesNotExist, ValidationError):
            raise VideoNotFound(job.video_id) from None

        owner_id = job.owner_id or video.owner_id
        logger.info(f"Starting transcoding for video {video.pk} (source {job.source_key})")
        _update(video, status=Status.PROCESSING, progress=0, error=None)

        try:
            with scratch_workspace(video.pk, self.workspace_root) as workdir:
                manifest_url = self._transcode(video, job.source_key, owner_id, workdir)
                _update(video, status=Status.COMPLETED, progress=100, manifest_url=manifest_url)
                logger.info(f"Transcoding completed successfully for video {video.pk}")
                self._notify(
                    video,
                    owner_id,
                    Status.COMPLETED,
                    execution_id,
                    title="Video transcoding completed",
                    message=f'Your video "{video.title}" has been successfully transcoded and is ready for viewing.',
                )
        except Exception as e:
            # A completed video stays completed even if telling the owner failed
            if video.transcoding_status != Status.COMPLETED:
                self._fail(video, owner_id, e, execution_id)
            raise

        return video

    def _transcode(self, video: Video, source_key: str, owner_id: str, workdir: Path) -> str:
        source_path = workdir / f"source{Path(source_key).suffix or '.mp4'}"
        logger.info(f"Downloading original video {source_key}")
        self.store.download(source_key, source_path)

        info = self.probe(source_path)
        _update(video, duration=round_half_up(info.duration_seconds))

        plan = self.plan(info.height)
        if not plan:
            raise PlanningError(
                f"No renditions can be produced for a {info.width}x{info.height} source"
            )
        logger.info(f"Generating qualities: {', '.join(q.name for q in plan)}")

        entries = []
        for completed, descriptor in enumerate(plan, start=1):
            output_path = workdir / f"{descriptor.name}.mp4"
            self.encode(source_path, output_path, descriptor)

            key = rendition_key(owner_id, video.pk, descriptor.name)
            url = self.store.upload(output_path, key, content_type=CONTENT_TYPES[".mp4"])
            QualityVariant.objects.update_or_create(
                video=video,
                quality=descriptor.name,
                defaults={
                    "url": url,
                    "size": output_path.stat().st_size,
                    "bitrate": descriptor.bitrate_kbps,
                },
            )
            entries.append(ManifestEntry(descriptor, Path(key).name, descriptor.bitrate_kbps))

            progress = encode_progress(completed, len(plan))
            _update(video, progress=max(progress, video.transcoding_progress))
            logger.info(f"Video {video.pk}: {descriptor.name} done ({progress}%)")

        logger.info("Generating HLS master playlist...")
        manifest_path = workdir / MANIFEST_FILENAME
        manifest_path.write_text(build_manifest(entries), encoding="utf-8")
        return self.store.upload(
            manifest_path,
            manifest_key(owner_id, video.pk),
            content_type=CONTENT_TYPES[".m3u8"],
        )

    def _fail(self, video: Video, owner_id: str, error: Exception, execution_id):
        message = (str(error) or error.__class__.__name__)[:MAX_ERROR_LENGTH]
        logger.error(f"Transcoding failed for video {video.pk}: {message}")
        # Progress stays where the run got to; recorded variants stay too
        _update(video, status=Status.FAILED, error=message)
        self._notify(
            video,
            owner_id,
            Status.FAILED,
            execution_id,
            title="Video transcoding failed",
            message=f'Transcoding failed for "{video.title}". Please try uploading again or contact support.',
        )

    def _notify(self, video, owner_id, status, execution_id, *, title, message):
        dedupe_key = f"{video.pk}:{status.value}:{execution_id}" if execution_id else None
        self.notifier.notify(
            owner_id,
            {
                "userId": owner_id,
                "type": TRANSCODING_EVENT,
                "title": title,
                "message": message,
                "link": f"/videos/{video.pk}",
            },
            dedupe_key=dedupe_key,
        )
