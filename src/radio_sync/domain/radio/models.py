"""
Radio domain models.

Contains data structures for representing station metadata, the segments a
station schedules, and the playable output handed to the audio layer.
"""

from dataclasses import dataclass, field, replace
from enum import IntEnum
from pathlib import PurePosixPath
from typing import Literal, Optional

StationType = Literal["dynamic", "talkshow", "static"]
IconType = Literal["color", "monochrome", "full", "cover"]
DJMarkerValue = Literal["intro_start", "intro_end", "outro_start", "outro_end"]


class Category(IntEnum):
    """Role of a segment in the programme."""

    ADVERT = 0
    IDENT = 1
    MUSIC = 2
    NEWS = 3
    DJ_SOLO = 5

    @property
    def label(self) -> str:
        return self.name.lower()


@dataclass(frozen=True)
class VoiceoverInfo:
    """Speech played over a segment.

    ``offset`` is in seconds relative to the start of the segment it accompanies.
    """

    path: str
    duration: float
    offset: float = 0.0
    audible_duration: Optional[float] = None

    def with_offset(self, offset: float) -> "VoiceoverInfo":
        return replace(self, offset=offset)

    def with_path(self, path: str) -> "VoiceoverInfo":
        return replace(self, path=path)


@dataclass(frozen=True)
class TrackMarker:
    """Title/artist change inside a segment (offset in milliseconds)."""

    offset: float
    title: Optional[str] = None
    artist: Optional[str] = None


@dataclass(frozen=True)
class DJMarker:
    """DJ speech-window boundary inside a track (offset in milliseconds)."""

    offset: float
    value: DJMarkerValue


@dataclass(frozen=True)
class SegmentInfo:
    """One schedulable audio file as declared in station metadata.

    Entries are shared between draws, so the selection policy tags a copy
    (``with_category``) instead of changing the entry itself.
    """

    path: str  # Relative to the station folder (or data root when shared)
    duration: float  # in seconds
    category: Optional[Category] = None
    audible_duration: Optional[float] = None  # Next segment may start here
    intro_voiceovers: tuple[VoiceoverInfo, ...] = ()
    track_markers: tuple[TrackMarker, ...] = ()
    dj_markers: tuple[DJMarker, ...] = ()
    shared: bool = False  # Comes from radio.json's common pool

    @property
    def effective_duration(self) -> float:
        """Seconds until the following segment begins."""
        return self.audible_duration or self.duration

    def with_category(self, category: Category) -> "SegmentInfo":
        return replace(self, category=category)

    def with_path(self, path: str) -> "SegmentInfo":
        return replace(self, path=path)

    def dj_marker_seconds(self, value: DJMarkerValue) -> Optional[float]:
        """Position (seconds) of the first DJ marker with ``value``, if any."""
        for marker in self.dj_markers:
            if marker.value == value:
                return marker.offset / 1000
        return None

    def to_voiceover(self, offset: float = 0.0) -> VoiceoverInfo:
        return VoiceoverInfo(
            path=self.path,
            duration=self.duration,
            offset=offset,
            audible_duration=self.audible_duration,
        )


@dataclass(frozen=True)
class PlayableSegment:
    """A selected segment ready for playback.

    Produced fresh by every selection; ``info.path`` and the voiceover paths
    are absolute, ``start_timestamp`` is UTC epoch milliseconds.
    """

    info: SegmentInfo
    start_timestamp: float
    voiceovers: tuple[VoiceoverInfo, ...] = ()

    @property
    def category(self) -> Optional[Category]:
        return self.info.category

    @property
    def end_timestamp(self) -> float:
        return self.start_timestamp + self.info.effective_duration * 1000

    def position_ms(self, now_ms: float) -> float:
        """Offset into the segment at ``now_ms``."""
        return now_ms - self.start_timestamp

    def get_title(self, position: float = 0.0) -> str:
        """Title shown at ``position`` seconds into the segment.

        Uses the latest track marker at or before the position, falling back
        to the file name.
        """
        position_ms = position * 1000
        current: Optional[TrackMarker] = None
        for marker in sorted(self.info.track_markers, key=lambda m: m.offset):
            if marker.offset > position_ms:
                break
            current = marker

        if current and current.title:
            if current.artist:
                return f"{current.artist} - {current.title}"
            return current.title

        return PurePosixPath(self.info.path).stem


@dataclass(frozen=True)
class StationInfo:
    """Display information for a station."""

    title: str
    genre: str = ""
    dj: str = ""
    icons: dict[str, str] = field(default_factory=dict)  # IconType -> relative path


@dataclass(frozen=True)
class StationMetadata:
    """Parsed ``station.json`` document."""

    type: StationType
    info: StationInfo
    file_groups: dict[str, tuple[SegmentInfo, ...]]
    common_adverts: tuple[str, ...] = ()

    @property
    def track_list(self) -> tuple[SegmentInfo, ...]:
        return self.file_groups.get("track", ())

    def get_list(self, list_id: str) -> tuple[SegmentInfo, ...]:
        """File group by identifier; empty when the station does not declare it."""
        return self.file_groups.get(list_id, ())


@dataclass(frozen=True)
class RadioMetadata:
    """Parsed ``radio.json`` document: shared pools plus station folders."""

    common: dict[str, tuple[SegmentInfo, ...]]
    station_paths: tuple[str, ...]


@dataclass(frozen=True)
class NowPlaying:
    """What a station is airing at a given moment.

    Calculated deterministically from station metadata and the current time.
    """

    segment: PlayableSegment
    position_ms: float  # Position within current segment
    upcoming: tuple[PlayableSegment, ...]  # Forward peeks, not guaranteed to air
