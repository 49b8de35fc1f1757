"""
Deterministic timeline calculation for radio.

A station's schedule is replayed from its epoch (UTC midnight on the first
of the current month), which is what lets every listener "tune in
mid-stream" and land on the same segment at the same offset.
"""

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from loguru import logger

from .generator import UINT32_MASK
from .models import NowPlaying, PlayableSegment

if TYPE_CHECKING:
    from .stations import RadioStation


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(moment: datetime) -> datetime:
    """Interpret naive datetimes as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def get_epoch(current_time: Optional[datetime] = None) -> datetime:
    """Start of the UTC month containing ``current_time``.

    Args:
        current_time: Moment to compute the epoch for (default: now)

    Returns:
        Timezone-aware datetime at 00:00:00 UTC on the 1st
    """
    moment = as_utc(current_time) if current_time else utc_now()
    return moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def to_epoch_ms(moment: datetime) -> float:
    return as_utc(moment).timestamp() * 1000


def epoch_seed(epoch: datetime) -> int:
    """Generator seed for an epoch: its UTC seconds truncated to 32 bits."""
    return int(as_utc(epoch).timestamp()) & UINT32_MASK


def get_upcoming_segments(station: "RadioStation", count: int = 5) -> list[PlayableSegment]:
    """Segments expected after the current one.

    Runs forward on a clone of the station, so the live station is not
    advanced. The result is a forecast: lookahead voiceovers chosen later on
    the live station may consume entropy and change what actually airs.

    Args:
        station: Station with initialized state
        count: Number of segments to forecast

    Returns:
        List of upcoming playable segments, nearest first
    """
    forecast = station.clone(keep_state=True)
    forecast.lookahead_enabled = False
    return [forecast.next_segment() for _ in range(count)]


def calculate_now_playing(
    station: "RadioStation",
    current_time: Optional[datetime] = None,
    upcoming_count: int = 5,
) -> NowPlaying:
    """Calculate what a station airs at ``current_time``.

    Re-syncs the station (resetting its state) and returns the segment,
    the position inside it and a short forecast.

    Args:
        station: Station to sync
        current_time: Time to calculate for (default: now)
        upcoming_count: Number of segments to forecast

    Returns:
        NowPlaying with current segment, position, and upcoming queue
    """
    moment = as_utc(current_time) if current_time else utc_now()
    segment = station.get_synced_segment(moment)
    position_ms = segment.position_ms(to_epoch_ms(moment))
    upcoming = get_upcoming_segments(station, upcoming_count) if upcoming_count else []

    logger.debug(
        f"Now playing on '{station.source.path}': {segment.get_title(position_ms / 1000)} "
        f"at {position_ms / 1000:.1f}s/{segment.info.duration:.1f}s"
    )
    return NowPlaying(segment=segment, position_ms=position_ms, upcoming=tuple(upcoming))
