"""ffprobe wrapper for extracting container metadata from a source file."""
import json
import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path

from django.conf import settings

from .exceptions import ProbeError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MediaInfo:
    duration_seconds: float
    width: int
    height: int
    bitrate_bps: int


def _to_float(value, default=0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _to_int(value, default=0) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


def parse_probe_output(raw: str) -> MediaInfo:
    """
    Turn ffprobe's JSON (-show_format -show_streams) into MediaInfo.

    Duration and bitrate come from the container, falling back to the first
    video stream, then to 0.
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise ProbeError(f"Unreadable ffprobe output: {e}") from e

    video_stream = next(
        (s for s in data.get("streams", []) if s.get("codec_type") == "video"),
        None,
    )
    if video_stream is None:
        raise ProbeError("No video stream found")

    width = _to_int(video_stream.get("width"))
    height = _to_int(video_stream.get("height"))
    if width <= 0 or height <= 0:
        raise ProbeError("Video stream has no usable resolution")

    fmt = data.get("format", {})
    duration = _to_float(fmt.get("duration"), _to_float(video_stream.get("duration")))
    bitrate = _to_int(fmt.get("bit_rate"), _to_int(video_stream.get("bit_rate")))

    return MediaInfo(duration_seconds=duration, width=width, height=height, bitrate_bps=bitrate)


def probe_media(file_path) -> MediaInfo:
    """
    Read duration, resolution and bitrate of a local media file.

    Raises:
        ProbeError: file missing/unreadable, ffprobe unavailable, failing or hung,
            or no decodable video stream.
    """
    path = Path(file_path)
    if not path.is_file():
        raise ProbeError(f"Source file not found: {path}")

    cmd = [
        settings.FFPROBE_PATH,
        "-v", "error",
        "-print_format", "json",
        "-show_format",
        "-show_streams",
        str(path),
    ]
    try:
        proc = subprocess.run(
            cmd,
            check=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            timeout=settings.FFPROBE_TIMEOUT_SECONDS,
        )
    except FileNotFoundError as e:
        raise ProbeError(f"ffprobe not available: {e}") from e
    except subprocess.TimeoutExpired as e:
        raise ProbeError(f"ffprobe timed out after {e.timeout}s on {path.name}") from e
    except subprocess.CalledProcessError as e:
        err = e.stderr.decode("utf-8", errors="ignore").strip() if e.stderr else str(e)
        raise ProbeError(f"ffprobe failed for {path.name}: {err[:500]}") from e

    info = parse_probe_output(proc.stdout.decode("utf-8", errors="ignore"))
    logger.info(
        f"Probed {path.name}: {info.width}x{info.height}, "
        f"{info.duration_seconds:.2f}s, {info.bitrate_bps} bps"
    )
    return info
