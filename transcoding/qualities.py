from dataclasses import dataclass


@dataclass(frozen=True)
class QualityDescriptor:
    name: str
    width: int
    height: int
    bitrate_kbps: int

    @property
    def resolution(self) -> str:
        return f"{self.width}x{self.height}"


# Candidate renditions. Add rows here to extend the ladder.
QUALITY_LADDER = (
    QualityDescriptor("360p", 640, 360, 800),
    QualityDescriptor("720p", 1280, 720, 2500),
    QualityDescriptor("1080p", 1920, 1080, 5000),
)


def select_renditions(source_height: int, candidates=QUALITY_LADDER) -> list[QualityDescriptor]:
    """
    Renditions worth producing for a source of the given height: every candidate
    no taller than the source, ascending by height. Upscaling is never planned, so
    a source below the smallest candidate gets an empty plan.
    """
    eligible = [q for q in candidates if q.height <= source_height]
    return sorted(eligible, key=lambda q: q.height)
