"""Errors raised by the transcoding pipeline."""


class TranscodeError(Exception):
    """Base class for every pipeline failure."""


class VideoNotFound(TranscodeError):
    def __init__(self, video_id):
        self.video_id = video_id
        super().__init__(f"Video {video_id} not found")


class ProbeError(TranscodeError):
    """Source file unreadable or has no decodable video stream."""


class PlanningError(TranscodeError):
    """No rendition can be produced for the source."""


class EncodeError(TranscodeError):
    def __init__(self, descriptor, cause):
        self.descriptor = descriptor
        self.cause = cause
        super().__init__(f"Encoding {descriptor.name} failed: {cause}")


class StorageError(TranscodeError):
    """Download or upload against the object store failed."""


class CleanupError(TranscodeError):
    """Scratch workspace could not be removed. Only ever logged."""


class VideoLocked(TranscodeError):
    def __init__(self, video_id):
        self.video_id = video_id
        super().__init__(f"Video {video_id} is still locked by another job")
