import pytest

from transcoding.qualities import QUALITY_LADDER, QualityDescriptor, select_renditions


def names(plan):
    return [q.name for q in plan]


@pytest.mark.parametrize(
    "height, expected",
    [
        (2160, ["360p", "720p", "1080p"]),
        (1080, ["360p", "720p", "1080p"]),
        (1079, ["360p", "720p"]),
        (720, ["360p", "720p"]),
        (480, ["360p"]),
        (360, ["360p"]),
        (240, []),
        (0, []),
    ],
)
def test_select_renditions_keeps_candidates_up_to_source_height(height, expected):
    assert names(select_renditions(height)) == expected


def test_select_renditions_sorts_ascending_without_mutating_candidates():
    candidates = [
        QualityDescriptor("1080p", 1920, 1080, 5000),
        QualityDescriptor("480p", 854, 480, 1200),
        QualityDescriptor("720p", 1280, 720, 2500),
    ]
    before = list(candidates)

    plan = select_renditions(1080, candidates)

    assert names(plan) == ["480p", "720p", "1080p"]
    assert candidates == before


def test_default_ladder():
    assert [(q.name, q.resolution, q.bitrate_kbps) for q in QUALITY_LADDER] == [
        ("360p", "640x360", 800),
        ("720p", "1280x720", 2500),
        ("1080p", "1920x1080", 5000),
    ]
