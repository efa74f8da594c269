import math
import mimetypes
import re

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9.-]")


def sanitize_name(value) -> str:
    """Replace anything outside [a-zA-Z0-9.-] with '_' so it is safe in paths and keys."""
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="replace")
    return _UNSAFE_CHARS.sub("_", str(value))


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def guess_kind(path: str) -> str:
    """Return 'image' | 'video' | 'other' based on mimetype/extension."""
    mime, _ = mimetypes.guess_type(path)
    if not mime:
        return "other"
    if mime.startswith("image/"):
        return "image"
    if mime.startswith("video/"):
        return "video"
    return "other"


def hls_prefix(owner_id, video_id) -> str:
    return f"videos/{sanitize_name(owner_id)}/{video_id}/hls"


def rendition_key(owner_id, video_id, quality: str) -> str:
    return f"{hls_prefix(owner_id, video_id)}/{quality}.mp4"


def manifest_key(owner_id, video_id) -> str:
    return f"{hls_prefix(owner_id, video_id)}/master.m3u8"
