"""HLS master playlist generation."""
from dataclasses import dataclass

from .qualities import QualityDescriptor

MANIFEST_FILENAME = "master.m3u8"
HEADER = "#EXTM3U\n#EXT-X-VERSION:3\n\n"


@dataclass(frozen=True)
class ManifestEntry:
    descriptor: QualityDescriptor
    filename: str       # relative to the playlist
    bitrate_kbps: int


def build_manifest(entries) -> str:
    """
    Render a master playlist with one stream declaration per entry, in the
    order given. Entries are expected ascending by height so players see the
    ladder lowest-first. No entries gives a header-only playlist.
    """
    parts = [HEADER]
    for entry in entries:
        parts.append(
            f"#EXT-X-STREAM-INF:BANDWIDTH={entry.bitrate_kbps * 1000},"
            f"RESOLUTION={entry.descriptor.resolution}\n"
        )
        parts.append(f"{entry.filename}\n\n")
    return "".join(parts)
