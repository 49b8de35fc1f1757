"""Shared fixtures for radio scheduling tests."""

from datetime import datetime, timezone
import pytest

from radio_sync.core.config import SchedulerConfig
from radio_sync.domain.radio.metadata import StationSource
from radio_sync.domain.radio.models import (
    DJMarker,
    SegmentInfo,
    StationInfo,
    StationMetadata,
    VoiceoverInfo,
)

# Mid-month so the epoch (2024-03-01 00:00 UTC) is well in the past
FIXED_NOW = datetime(2024, 3, 15, 12, 0, 0, tzinfo=timezone.utc)
FIXED_EPOCH = datetime(2024, 3, 1, tzinfo=timezone.utc)
FIXED_EPOCH_MS = FIXED_EPOCH.timestamp() * 1000


def make_segments(prefix: str, durations: list[float], **kwargs) -> tuple[SegmentInfo, ...]:
    return tuple(
        SegmentInfo(path=f"{prefix}/{prefix}_{i}.ogg", duration=d, **kwargs)
        for i, d in enumerate(durations)
    )


def make_source(
    station_type: str,
    file_groups: dict[str, tuple[SegmentInfo, ...]],
    path: str = "test_fm",
) -> StationSource:
    meta = StationMetadata(
        type=station_type,
        info=StationInfo(title="Test FM", genre="Pop", dj="Nobody"),
        file_groups=file_groups,
    )
    return StationSource(path, "data/", meta=meta)


def dynamic_groups(
    track_count: int = 12,
    intro: bool = False,
    markers: bool = False,
    outros: bool = True,
) -> dict[str, tuple[SegmentInfo, ...]]:
    """File groups for a fully populated dynamic station."""
    dj_markers: tuple[DJMarker, ...] = ()
    if markers:
        dj_markers = (
            DJMarker(offset=3000, value="intro_start"),
            DJMarker(offset=9000, value="intro_end"),
            DJMarker(offset=165000, value="outro_start"),
            DJMarker(offset=170000, value="outro_end"),
        )
    intro_voiceovers: tuple[VoiceoverInfo, ...] = ()
    if intro:
        intro_voiceovers = tuple(
            VoiceoverInfo(path=f"intro/intro_{i}.ogg", duration=4.0) for i in range(3)
        )

    groups = {
        "track": tuple(
            SegmentInfo(
                path=f"track/track_{i}.ogg",
                duration=180.0 + i,
                audible_duration=178.0 + i,
                intro_voiceovers=intro_voiceovers,
                dj_markers=dj_markers,
            )
            for i in range(track_count)
        ),
        "id": make_segments("id", [5.0, 6.0, 7.0]),
        "mono_solo": make_segments("mono_solo", [20.0, 25.0, 30.0]),
        "adverts": make_segments("adverts", [30.0, 30.0, 45.0, 60.0]),
    }
    if outros:
        groups["to_adverts"] = make_segments("to_adverts", [4.0, 4.0, 4.0])
    return groups


@pytest.fixture
def scheduler_config() -> SchedulerConfig:
    return SchedulerConfig()


@pytest.fixture
def fixed_source() -> StationSource:
    """Static station with three tracks of 100s, 200s and 150s."""
    return make_source("static", {"track": make_segments("track", [100.0, 200.0, 150.0])})


@pytest.fixture
def talkshow_source() -> StationSource:
    return make_source(
        "talkshow",
        {
            "track": make_segments("show", [600.0, 900.0]),
            "adverts": make_segments("adverts", [30.0, 30.0, 45.0]),
            "id": make_segments("id", [5.0, 6.0]),
        },
    )


@pytest.fixture
def dynamic_source() -> StationSource:
    return make_source("dynamic", dynamic_groups())


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def fixed_epoch_ms() -> float:
    return FIXED_EPOCH_MS


@pytest.fixture
def segments_factory():
    return make_segments


@pytest.fixture
def source_factory():
    return make_source


@pytest.fixture
def groups_factory():
    return dynamic_groups
