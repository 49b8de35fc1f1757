"""
Station state machines.

A station picks its segments with a per-type policy on top of shared
machinery: seeded randomness, anti-repeat draw pools, a bounded history,
peeking by replay, and reconstruction of the segment airing "now".

Variants:
- ``FixedPlaylistStation`` ("static"): plays the track list in order
- ``TalkshowStation`` ("talkshow"): playlist shows separated by adverts/idents
- ``DynamicStation`` ("dynamic"): random tracks, DJ solos, adverts, voiceovers
"""

import copy
import math
import time
from abc import ABC, abstractmethod
from datetime import datetime
from typing import ClassVar, Optional

from loguru import logger

from radio_sync.core.config import SchedulerConfig

from .exceptions import RadioError, SelectionError
from .metadata import StationSource
from .models import Category, PlayableSegment, SegmentInfo, StationMetadata, VoiceoverInfo
from .state import StationState
from .timeline import as_utc, epoch_seed, get_epoch, to_epoch_ms, utc_now

# Consecutive zero-length selections tolerated before a sync is abandoned
MAX_STALLED_STEPS = 1000


class RadioStation(ABC):
    """Base class for station scheduling.

    Subclasses implement ``select_segment`` (and optionally
    ``attach_voiceovers``); everything else lives here. ``RadioStation``
    itself cannot be instantiated.

    Args:
        source: Station location with loaded metadata
        config: Scheduler settings (history limit, anti-repeat window)
    """

    station_type: ClassVar[str]

    def __init__(self, source: StationSource, config: Optional[SchedulerConfig] = None):
        if source.meta is None:
            raise RadioError(f"Metadata for '{source.path}' must be loaded first")

        self.source = source
        self.metadata: StationMetadata = source.meta
        self.config = config or SchedulerConfig()
        self.state: Optional[StationState] = None
        self.epoch: Optional[datetime] = None
        self.epoch_ms: float = 0.0
        # Forward-peek clones turn this off so a peek never triggers another peek
        self.lookahead_enabled = True
        self._warned_lists: set[str] = set()

        self.reset_state()

    # -- policy ---------------------------------------------------------

    @abstractmethod
    def select_segment(self) -> SegmentInfo:
        """Pick the next segment and tag its category.

        Must not call ``peek_segment`` with a positive offset.
        """

    def attach_voiceovers(self, info: SegmentInfo) -> tuple[VoiceoverInfo, ...]:
        """Voiceovers for the segment just registered (none by default)."""
        return ()

    # -- state ----------------------------------------------------------

    def reset_state(self, current_time: Optional[datetime] = None) -> None:
        """Rewind to the start of the epoch containing ``current_time``.

        Reseeds the generator and clears history, counters and draw pools.
        """
        self._reset_to_epoch(get_epoch(current_time))

    def _reset_to_epoch(self, epoch: datetime) -> None:
        self.epoch = epoch
        self.epoch_ms = to_epoch_ms(epoch)
        self.state = StationState.initial(seed=epoch_seed(epoch))
        logger.debug(f"Reset '{self.source.path}' to epoch {epoch.isoformat()}")

    def _require_state(self) -> StationState:
        if self.state is None:
            raise RadioError("Station state is not initialized; call reset_state() first")
        return self.state

    def clone(self, keep_state: bool) -> "RadioStation":
        """Independent station sharing only the immutable metadata.

        Args:
            keep_state: Deep-copy the current state; otherwise the clone has no
                state until ``reset_state()`` is called

        Returns:
            New station of the same type
        """
        cloned = copy.copy(self)
        cloned._warned_lists = set(self._warned_lists)
        if keep_state and self.state is not None:
            cloned.state = self.state.copy()
        else:
            cloned.state = None
            cloned.epoch = None
            cloned.epoch_ms = 0.0
        return cloned

    # -- stepping -------------------------------------------------------

    def _step(self) -> tuple[SegmentInfo, tuple[VoiceoverInfo, ...], float]:
        """Select, register and decorate one segment on ``self.state``.

        Returns:
            Tuple of (segment info, voiceovers, seconds since epoch it starts at)
        """
        state = self._require_state()
        start_time = state.accumulated_time

        info = self.select_segment()
        state.register(info, self.config.history_limit)
        voiceovers = self.attach_voiceovers(info)

        return info, voiceovers, start_time

    def advance(self, state: StationState) -> tuple[StationState, SegmentInfo]:
        """Pure step: apply one selection to a copy of ``state``.

        Args:
            state: State to advance (left untouched)

        Returns:
            Tuple of (new state, selected segment)
        """
        runner = self.clone(keep_state=False)
        runner.epoch, runner.epoch_ms = self.epoch, self.epoch_ms
        runner.state = state.copy()
        info, _, _ = runner._step()
        return runner.state, info

    def _playable(
        self,
        info: SegmentInfo,
        voiceovers: tuple[VoiceoverInfo, ...],
        start_time: float,
    ) -> PlayableSegment:
        return PlayableSegment(
            info=self.source.resolve_object_path(info),
            start_timestamp=self.epoch_ms + start_time * 1000,
            voiceovers=tuple(self.source.resolve_object_path(v) for v in voiceovers),
        )

    def next_segment(self) -> PlayableSegment:
        """Select the next segment and advance the station.

        Returns:
            Playable segment with absolute paths and its start timestamp
        """
        info, voiceovers, start_time = self._step()
        return self._playable(info, voiceovers, start_time)

    def get_synced_segment(self, current_time: Optional[datetime] = None) -> PlayableSegment:
        """Segment airing at ``current_time``, rebuilt by replay from the epoch.

        Resets the station, then selects segments until one ends after
        ``current_time``. The offset into it is ``now - start_timestamp``.

        Raises:
            SelectionError: If the track list is empty, a duration is negative or
                not finite, or durations never advance
        """
        moment = as_utc(current_time) if current_time else utc_now()
        if not self.metadata.track_list:
            raise SelectionError(f"Station '{self.source.path}' has no tracks to sync")

        started = time.perf_counter()
        self.reset_state(moment)
        state = self._require_state()
        now_ms = to_epoch_ms(moment)

        stalled = 0
        while True:
            elapsed_before = state.accumulated_time
            info, voiceovers, start_time = self._step()
            duration = info.effective_duration
            if not math.isfinite(duration) or duration < 0:
                raise SelectionError(
                    f"Station '{self.source.path}' cannot sync past {info.path!r}: "
                    f"invalid duration {duration!r}"
                )

            if self.epoch_ms + state.accumulated_time * 1000 > now_ms:
                break

            if state.accumulated_time <= elapsed_before:
                stalled += 1
                if stalled >= MAX_STALLED_STEPS:
                    raise SelectionError(
                        f"Station '{self.source.path}' stopped advancing after "
                        f"{state.segment_index} segments (zero-length segments?)"
                    )
            else:
                stalled = 0

        took_ms = (time.perf_counter() - started) * 1000
        logger.info(
            f"Syncing to '{self.source.path}' took {took_ms:.0f}ms "
            f"({state.segment_index} segments replayed)"
        )
        return self._playable(info, voiceovers, start_time)

    # -- peeking --------------------------------------------------------

    def peek_segment(self, offset: int) -> Optional[SegmentInfo]:
        """Segment ``offset`` positions from the current one.

        0 is the current segment, negative values look back, positive values
        look ahead. Lookback beyond the history is rebuilt by replaying from
        the epoch on a fresh clone; lookahead runs on a clone of the current
        state. Neither touches this station's state.

        Returns:
            The segment, or None when looking back before the first one
        """
        state = self._require_state()

        if offset <= 0:
            history_index = -offset
            if history_index < len(state.history):
                return state.history[history_index]

            target_index = state.segment_index + offset
            if target_index <= 0:
                return None

            replay = self.clone(keep_state=False)
            replay.lookahead_enabled = True
            replay._reset_to_epoch(self.epoch)
            info = None
            for _ in range(target_index):
                info, _, _ = replay._step()
            return info

        forecast = self.clone(keep_state=True)
        forecast.lookahead_enabled = False
        info = None
        for _ in range(offset):
            info, _, _ = forecast._step()
        return info

    # -- helpers for policies -------------------------------------------

    def _warn_missing(self, list_id: str) -> None:
        if list_id not in self._warned_lists:
            self._warned_lists.add(list_id)
            logger.warning(
                f"Station '{self.source.path}' has no '{list_id}' files, falling back"
            )

    def draw_from(self, list_id: str, category: Optional[Category] = None) -> Optional[SegmentInfo]:
        """Anti-repeat draw from a file group.

        Args:
            list_id: File group identifier
            category: Category to tag the returned copy with

        Returns:
            Selected entry (tagged copy), or None if the group is absent/empty
        """
        entries = self.metadata.get_list(list_id)
        if not entries:
            self._warn_missing(list_id)
            return None

        state = self._require_state()
        index = state.draw_pools.next_unique_index(
            list_id,
            len(entries),
            state.generator.next(),
            self.config.dont_repeat_for,
        )
        if index is None:
            return None

        selected = entries[index]
        return selected.with_category(category) if category is not None else selected

    def playlist_track(self, index: int) -> SegmentInfo:
        """Track at ``index`` (wrapping) tagged MUSIC."""
        tracks = self.metadata.track_list
        if not tracks:
            raise SelectionError(f"Station '{self.source.path}' has no tracks")
        return tracks[index % len(tracks)].with_category(Category.MUSIC)

    @property
    def segment_index(self) -> int:
        return self._require_state().segment_index

    @property
    def track_index(self) -> int:
        return self._require_state().track_index

    @property
    def accumulated_time(self) -> float:
        return self._require_state().accumulated_time

    def __repr__(self) -> str:
        return f"{type(self).__name__}(path={self.source.path!r})"


class FixedPlaylistStation(RadioStation):
    """Plays the track list in order, forever."""

    station_type = "static"

    def select_segment(self) -> SegmentInfo:
        return self.playlist_track(self._require_state().segment_index)


class TalkshowStation(RadioStation):
    """Playlist shows separated by an advert break and a station ident.

    After MUSIC comes an advert; after an advert (or news) comes an ident;
    after an ident the next show plays.
    """

    station_type = "talkshow"

    def select_segment(self) -> SegmentInfo:
        current = self.peek_segment(0)

        if current is not None and current.category in (
            Category.MUSIC,
            Category.NEWS,
            Category.ADVERT,
        ):
            if current.category in (Category.ADVERT, Category.NEWS):
                transition = self.draw_from("id", Category.IDENT)
            else:
                transition = self.draw_from("adverts", Category.ADVERT)
            if transition is not None:
                return transition

        return self.playlist_track(self._require_state().track_index)


class DynamicStation(RadioStation):
    """Random tracks with DJ solos, adverts, idents and voiceovers.

    - After an advert an ident always follows.
    - After a track, half the time a transition plays: a DJ solo or an
      advert, picked by a second coin flip.
    - Otherwise a new track is drawn from the "track" pool.
    """

    station_type = "dynamic"
    transition_chance = 0.5

    def select_segment(self) -> SegmentInfo:
        generator = self._require_state().generator
        roll = generator.next_float()
        current = self.peek_segment(0)

        selected: Optional[SegmentInfo] = None
        if current is not None and current.category == Category.ADVERT:
            selected = self.draw_from("id", Category.IDENT)
        elif (
            current is not None
            and current.category == Category.MUSIC
            and roll < self.transition_chance
        ):
            if generator.next() % 2 == 0:
                selected = self.draw_from("mono_solo", Category.DJ_SOLO)
            else:
                selected = self.draw_from("adverts", Category.ADVERT)

        if selected is None:
            selected = self.draw_from("track", Category.MUSIC)
        if selected is None:
            raise SelectionError(f"Station '{self.source.path}' has no tracks")
        return selected

    def attach_voiceovers(self, info: SegmentInfo) -> tuple[VoiceoverInfo, ...]:
        """Intro speech from the track's attachments, outro speech before adverts."""
        if info.category != Category.MUSIC:
            return ()

        voiceovers: list[VoiceoverInfo] = []
        default_offset = self.config.voiceover_offset

        if info.intro_voiceovers:
            generator = self._require_state().generator
            intro = info.intro_voiceovers[generator.next() % len(info.intro_voiceovers)]
            intro_start = info.dj_marker_seconds("intro_start")
            offset = intro_start if intro_start is not None else default_offset
            voiceovers.append(intro.with_offset(offset))

        if self.lookahead_enabled:
            upcoming = self.peek_segment(1)
            if upcoming is not None and upcoming.category == Category.ADVERT:
                outro = self.draw_from("to_adverts")
                if outro is not None:
                    outro_end = info.dj_marker_seconds("outro_end")
                    end = outro_end if outro_end is not None else info.duration - default_offset
                    voiceovers.append(outro.to_voiceover(max(0.0, end - outro.duration)))

        return tuple(voiceovers)


STATION_CLASSES: dict[str, type[RadioStation]] = {
    cls.station_type: cls
    for cls in (FixedPlaylistStation, TalkshowStation, DynamicStation)
}


def create_station(
    source: StationSource,
    config: Optional[SchedulerConfig] = None,
) -> RadioStation:
    """Create the station variant matching ``source.meta.type``.

    Args:
        source: Station with loaded metadata
        config: Scheduler settings

    Returns:
        Station with state reset to the current epoch
    """
    if source.meta is None:
        source.load_meta()
    station_class = STATION_CLASSES.get(source.meta.type, DynamicStation)
    station = station_class(source, config)
    logger.debug(f"Created {station_class.__name__} for '{source.path}'")
    return station
