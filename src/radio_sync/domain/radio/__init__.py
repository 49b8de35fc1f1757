"""
Radio domain module.

Provides deterministic radio station scheduling: every listener derives the
same segment and offset from station metadata and the current time alone.
"""

from .draw_pool import DrawPoolManager, IndexDrawPool
from .exceptions import (
    InvalidMetadataError,
    MetadataLoadError,
    RadioError,
    SelectionError,
)
from .generator import SeededGenerator, generate, to_float
from .metadata import (
    StationSource,
    fetch_json,
    load_radio_meta,
    load_station_sources,
    parse_radio_metadata,
    parse_segment_info,
    parse_station_metadata,
)
from .models import (
    Category,
    DJMarker,
    NowPlaying,
    PlayableSegment,
    RadioMetadata,
    SegmentInfo,
    StationInfo,
    StationMetadata,
    TrackMarker,
    VoiceoverInfo,
)
from .state import StationState
from .stations import (
    DynamicStation,
    FixedPlaylistStation,
    RadioStation,
    TalkshowStation,
    create_station,
)
from .timeline import (
    calculate_now_playing,
    get_epoch,
    get_upcoming_segments,
)

__all__ = [
    # Models
    "Category",
    "DJMarker",
    "NowPlaying",
    "PlayableSegment",
    "RadioMetadata",
    "SegmentInfo",
    "StationInfo",
    "StationMetadata",
    "TrackMarker",
    "VoiceoverInfo",
    # Randomness
    "SeededGenerator",
    "generate",
    "to_float",
    "IndexDrawPool",
    "DrawPoolManager",
    # Metadata
    "StationSource",
    "fetch_json",
    "load_radio_meta",
    "load_station_sources",
    "parse_radio_metadata",
    "parse_segment_info",
    "parse_station_metadata",
    # Stations
    "StationState",
    "RadioStation",
    "FixedPlaylistStation",
    "TalkshowStation",
    "DynamicStation",
    "create_station",
    # Timeline calculation
    "calculate_now_playing",
    "get_epoch",
    "get_upcoming_segments",
    # Errors
    "RadioError",
    "MetadataLoadError",
    "InvalidMetadataError",
    "SelectionError",
]
