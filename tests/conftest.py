from pathlib import Path

import pytest
from django.db.models.signals import post_save

from transcoding.exceptions import StorageError
from transcoding.models import Video
from transcoding.probe import MediaInfo

SOURCE_KEY = "uploads/abc123_holiday.mp4"


class FakeStore:
    """In-memory stand-in for ObjectStore."""

    def __init__(self, objects=None, fail_upload_suffix=None):
        self.objects = dict(objects or {})
        self.uploads = []
        self.fail_upload_suffix = fail_upload_suffix

    def download(self, key, local_path):
        if key not in self.objects:
            raise StorageError(f"Download of {key} failed: NoSuchKey")
        Path(local_path).write_bytes(self.objects[key])
        return Path(local_path)

    def upload(self, local_path, key, content_type=None):
        if self.fail_upload_suffix and key.endswith(self.fail_upload_suffix):
            raise StorageError(f"Upload of {key} failed: connection reset")
        self.objects[key] = Path(local_path).read_bytes()
        self.uploads.append((key, content_type))
        return self.object_url(key)

    def object_url(self, key):
        return f"http://minio.test/videos-local/{key}"


def fake_encode(source_path, output_path, descriptor):
    assert Path(source_path).exists()
    Path(output_path).write_bytes(descriptor.name.encode() * 100)


def make_probe(height, width=None, duration=125.6, bitrate=4_000_000):
    width = width or height * 16 // 9

    def probe(path):
        assert Path(path).exists()
        return MediaInfo(duration_seconds=duration, width=width, height=height, bitrate_bps=bitrate)

    return probe


@pytest.fixture
def store():
    return FakeStore(objects={SOURCE_KEY: b"original bytes"})


@pytest.fixture
def workspace_root(tmp_path, settings):
    root = tmp_path / "scratch"
    root.mkdir()
    settings.TRANSCODE_WORKSPACE_ROOT = root
    return root


@pytest.fixture
def video(db):
    return Video.objects.create(title="Holiday", owner_id="user-42", source_key=SOURCE_KEY)


@pytest.fixture
def progress_log():
    """Every transcoding_progress value persisted for a Video, in order."""
    seen = []

    def record(sender, instance, update_fields=None, **kwargs):
        if update_fields and "transcoding_progress" in update_fields:
            seen.append(instance.transcoding_progress)

    post_save.connect(record, sender=Video, weak=False)
    yield seen
    post_save.disconnect(record, sender=Video)
