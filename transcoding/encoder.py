import logging
import subprocess
from collections import deque
from pathlib import Path

from django.conf import settings

from .exceptions import EncodeError
from .qualities import QualityDescriptor

logger = logging.getLogger(__name__)

# Log one ffmpeg progress report out of this many
PROGRESS_LOG_EVERY = 50
STDERR_TAIL_LINES = 20


def build_encode_command(source_path, output_path, descriptor: QualityDescriptor) -> list[str]:
    """H.264/AAC MP4 at the descriptor's size and bitrate, moov atom up front for streaming."""
    return [
        settings.FFMPEG_PATH,
        "-hide_banner",
        "-nostdin",
        "-loglevel", "error",
        "-y",
        "-i", str(source_path),
        "-vf", f"scale={descriptor.width}:{descriptor.height}",
        "-c:v", "libx264",
        "-preset", settings.FFMPEG_PRESET,
        "-b:v", f"{descriptor.bitrate_kbps}k",
        "-c:a", "aac",
        "-b:a", settings.FFMPEG_AUDIO_BITRATE,
        "-movflags", "+faststart",
        "-progress", "pipe:1",
        "-nostats",
        str(output_path),
    ]


def encode_rendition(source_path, output_path, descriptor: QualityDescriptor, timeout: int | None = None) -> None:
    """
    Encode one rendition and block until ffmpeg exits.

    ffmpeg's progress reports are only logged. Its stderr goes to a log file
    next to the output so a chatty encoder can never fill a pipe; the last
    lines of it end up in the error. Any non-zero exit, missing binary or
    timeout raises EncodeError and removes the partial output.
    """
    output_path = Path(output_path)
    timeout = timeout or settings.FFMPEG_TIMEOUT_SECONDS
    cmd = build_encode_command(source_path, output_path, descriptor)
    log_path = output_path.with_suffix(".ffmpeg.log")
    logger.info(f"Encoding {descriptor.name}: {' '.join(cmd)}")

    try:
        with open(log_path, "w+", encoding="utf-8", errors="replace") as stderr_log:
            try:
                process = subprocess.Popen(
                    cmd,
                    stdout=subprocess.PIPE,
                    stderr=stderr_log,
                    text=True,
                )
            except OSError as e:
                raise EncodeError(descriptor, e) from e

            try:
                stdout, _ = process.communicate(timeout=timeout)
            except subprocess.TimeoutExpired as e:
                process.kill()
                process.communicate()
                output_path.unlink(missing_ok=True)
                raise EncodeError(descriptor, f"ffmpeg timed out after {timeout}s") from e

            stderr_log.seek(0)
            tail = deque((line.rstrip("\n") for line in stderr_log), maxlen=STDERR_TAIL_LINES)
    finally:
        log_path.unlink(missing_ok=True)

    reports = 0
    for line in (stdout or "").splitlines():
        if line.startswith("out_time="):
            reports += 1
            if reports % PROGRESS_LOG_EVERY == 0:
                logger.info(f"{descriptor.name} progress: {line.strip()}")

    if process.returncode != 0:
        detail = "\n".join(tail) or f"exit code {process.returncode}"
        output_path.unlink(missing_ok=True)
        raise EncodeError(descriptor, f"ffmpeg exited with {process.returncode}: {detail}")

    logger.info(f"Encoded {descriptor.name} to {output_path} ({reports} progress reports)")
