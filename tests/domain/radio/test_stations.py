"""Tests for station state machines."""

from datetime import datetime, timedelta, timezone

import pytest

from radio_sync.core.config import SchedulerConfig
from radio_sync.domain.radio.exceptions import RadioError, SelectionError
from radio_sync.domain.radio.models import Category
from radio_sync.domain.radio.stations import (
    DynamicStation,
    FixedPlaylistStation,
    RadioStation,
    TalkshowStation,
    create_station,
)


def run(station: RadioStation, count: int) -> list:
    return [station.next_segment() for _ in range(count)]


class TestRadioStationBase:
    """Tests for behaviour shared by every station type."""

    def test_abstract_station_cannot_be_instantiated(self, fixed_source) -> None:
        """Test constructing the abstract base fails immediately."""
        with pytest.raises(TypeError):
            RadioStation(fixed_source)

    def test_reset_state_is_idempotent(self, fixed_source, fixed_now) -> None:
        station = FixedPlaylistStation(fixed_source)
        station.reset_state(fixed_now)
        run(station, 3)

        station.reset_state(fixed_now)
        first = station.state.to_dict()
        station.reset_state(fixed_now)

        assert station.state.to_dict() == first
        assert station.segment_index == 0
        assert station.track_index == 0
        assert station.accumulated_time == 0.0
        assert station.state.history == []

    def test_reset_reseeds_per_month(self, dynamic_source, fixed_now) -> None:
        """Test each calendar month gets its own generator seed."""
        station = DynamicStation(dynamic_source)
        station.reset_state(fixed_now)
        march_seed = station.state.generator.seed

        station.reset_state(fixed_now + timedelta(days=30))
        assert station.state.generator.seed != march_seed
        assert station.epoch == datetime(2024, 4, 1, tzinfo=timezone.utc)

    def test_clone_without_state_requires_reset(self, fixed_source, fixed_now) -> None:
        station = FixedPlaylistStation(fixed_source)
        cloned = station.clone(keep_state=False)

        assert cloned.state is None
        with pytest.raises(RadioError):
            cloned.next_segment()

        cloned.reset_state(fixed_now)
        assert cloned.next_segment().info.path == "data/test_fm/track/track_0.ogg"

    def test_clone_with_state_is_independent(self, dynamic_source, fixed_now) -> None:
        """Test advancing a clone leaves the original untouched."""
        station = DynamicStation(dynamic_source)
        station.reset_state(fixed_now)
        run(station, 5)
        before = station.state.to_dict()

        cloned = station.clone(keep_state=True)
        assert cloned.state.to_dict() == before
        assert cloned.metadata is station.metadata

        run(cloned, 5)
        assert station.state.to_dict() == before
        assert cloned.segment_index == 10

    def test_history_is_bounded_and_newest_first(self, fixed_source, fixed_now) -> None:
        station = FixedPlaylistStation(fixed_source, SchedulerConfig(history_limit=2))
        station.reset_state(fixed_now)
        run(station, 4)

        assert [info.path for info in station.state.history] == [
            "track/track_0.ogg",
            "track/track_2.ogg",
        ]

    def test_advance_is_pure(self, dynamic_source, fixed_now) -> None:
        """Test advance() returns a new state and leaves the input alone."""
        station = DynamicStation(dynamic_source)
        station.reset_state(fixed_now)
        run(station, 3)
        state = station.state.copy()
        before = state.to_dict()

        new_state, info = station.advance(state)

        assert state.to_dict() == before
        assert new_state.segment_index == state.segment_index + 1
        assert new_state.history[0] == info
        assert station.next_segment().info == dynamic_source.resolve_object_path(info)

    def test_selection_does_not_mutate_metadata(self, fixed_source, fixed_now) -> None:
        """Test tagging a category copies the shared entry."""
        station = FixedPlaylistStation(fixed_source)
        station.reset_state(fixed_now)
        run(station, 3)

        assert all(info.category is None for info in fixed_source.meta.track_list)


class TestFixedPlaylistStation:
    """Tests for the static (fixed playlist) policy."""

    def test_plays_tracks_in_order(self, fixed_source, fixed_now, fixed_epoch_ms) -> None:
        """Test 3 tracks [100, 200, 150] play 0,1,2,0 with matching times."""
        station = FixedPlaylistStation(fixed_source)
        station.reset_state(fixed_now)

        times = []
        segments = []
        for _ in range(4):
            segments.append(station.next_segment())
            times.append(station.accumulated_time)

        assert [s.info.path for s in segments] == [
            "data/test_fm/track/track_0.ogg",
            "data/test_fm/track/track_1.ogg",
            "data/test_fm/track/track_2.ogg",
            "data/test_fm/track/track_0.ogg",
        ]
        assert times == [100.0, 300.0, 450.0, 550.0]
        assert [s.start_timestamp for s in segments] == [
            fixed_epoch_ms,
            fixed_epoch_ms + 100_000,
            fixed_epoch_ms + 300_000,
            fixed_epoch_ms + 450_000,
        ]
        assert all(s.category == Category.MUSIC for s in segments)
        assert station.segment_index == 4
        assert station.track_index == 4

    def test_uses_no_randomness(self, fixed_source, fixed_now) -> None:
        station = FixedPlaylistStation(fixed_source)
        station.reset_state(fixed_now)
        run(station, 10)
        assert station.state.generator.index == 0
        assert station.state.draw_pools.pools == {}

    def test_audible_duration_drives_timing(self, source_factory, segments_factory, fixed_now) -> None:
        """Test audible duration, when present, sets when the next segment starts."""
        source = source_factory(
            "static",
            {"track": segments_factory("track", [100.0], audible_duration=90.0)},
        )
        station = FixedPlaylistStation(source)
        station.reset_state(fixed_now)

        first, second = run(station, 2)
        assert second.start_timestamp - first.start_timestamp == 90_000
        assert station.accumulated_time == 180.0

    def test_empty_track_list_raises(self, source_factory, fixed_now) -> None:
        station = FixedPlaylistStation(source_factory("static", {"track": ()}))
        station.reset_state(fixed_now)
        with pytest.raises(SelectionError):
            station.next_segment()


class TestTalkshowStation:
    """Tests for the talkshow policy."""

    def test_alternates_show_advert_ident(self, talkshow_source, fixed_now) -> None:
        station = TalkshowStation(talkshow_source)
        station.reset_state(fixed_now)

        segments = run(station, 9)

        assert [s.category for s in segments] == [
            Category.MUSIC,
            Category.ADVERT,
            Category.IDENT,
        ] * 3
        shows = [s.info.path for s in segments if s.category == Category.MUSIC]
        assert shows == [
            "data/test_fm/show/show_0.ogg",
            "data/test_fm/show/show_1.ogg",
            "data/test_fm/show/show_0.ogg",
        ]
        assert station.track_index == 3

    def test_transitions_come_from_their_lists(self, talkshow_source, fixed_now) -> None:
        station = TalkshowStation(talkshow_source)
        station.reset_state(fixed_now)

        for segment in run(station, 30):
            if segment.category == Category.ADVERT:
                assert "/adverts/" in segment.info.path
            elif segment.category == Category.IDENT:
                assert "/id/" in segment.info.path

    def test_no_transitions_plays_shows_back_to_back(
        self, source_factory, segments_factory, fixed_now
    ) -> None:
        """Test missing transition lists fall back to the next show."""
        source = source_factory("talkshow", {"track": segments_factory("show", [60.0, 70.0])})
        station = TalkshowStation(source)
        station.reset_state(fixed_now)

        segments = run(station, 4)
        assert all(s.category == Category.MUSIC for s in segments)
        assert [s.info.path.rsplit("/", 1)[-1] for s in segments] == [
            "show_0.ogg",
            "show_1.ogg",
            "show_0.ogg",
            "show_1.ogg",
        ]

    def test_missing_ident_list_skips_ident(
        self, source_factory, segments_factory, fixed_now
    ) -> None:
        source = source_factory(
            "talkshow",
            {
                "track": segments_factory("show", [60.0, 70.0]),
                "adverts": segments_factory("adverts", [30.0]),
            },
        )
        station = TalkshowStation(source)
        station.reset_state(fixed_now)

        assert [s.category for s in run(station, 6)] == [
            Category.MUSIC,
            Category.ADVERT,
        ] * 3


class TestDynamicStation:
    """Tests for the dynamic policy."""

    def test_track_draws_do_not_repeat(self, source_factory, segments_factory, fixed_now) -> None:
        """Test 5 tracks with dont_repeat_for=4 never repeat within a window."""
        source = source_factory("dynamic", {"track": segments_factory("track", [100.0] * 5)})
        station = DynamicStation(source, SchedulerConfig(dont_repeat_for=4))
        station.reset_state(fixed_now)

        segments = run(station, 20)
        assert all(s.category == Category.MUSIC for s in segments)

        paths = [s.info.path for s in segments]
        for i in range(len(paths)):
            window = paths[max(0, i - 4):i]
            assert paths[i] not in window

    def test_transition_rules(self, dynamic_source, fixed_now) -> None:
        """Test what may follow each category."""
        station = DynamicStation(dynamic_source)
        station.reset_state(fixed_now)

        categories = [s.category for s in run(station, 300)]

        assert categories[0] == Category.MUSIC
        for previous, current in zip(categories, categories[1:]):
            if previous == Category.ADVERT:
                assert current == Category.IDENT
            elif previous in (Category.IDENT, Category.DJ_SOLO):
                assert current == Category.MUSIC
        assert {Category.MUSIC, Category.ADVERT, Category.IDENT, Category.DJ_SOLO} <= set(
            categories
        )

    def test_is_deterministic(self, dynamic_source, fixed_now) -> None:
        """Test two stations with the same epoch produce identical schedules."""
        first = DynamicStation(dynamic_source)
        second = DynamicStation(dynamic_source)
        first.reset_state(fixed_now)
        second.reset_state(fixed_now)

        assert run(first, 100) == run(second, 100)
        assert first.state.generator.index == second.state.generator.index

    def test_intro_voiceover_uses_marker(self, source_factory, groups_factory, fixed_now) -> None:
        source = source_factory("dynamic", groups_factory(intro=True, markers=True, outros=False))
        station = DynamicStation(source)
        station.reset_state(fixed_now)

        for segment in run(station, 50):
            if segment.category == Category.MUSIC:
                assert len(segment.voiceovers) == 1
                intro = segment.voiceovers[0]
                assert intro.path.startswith("data/test_fm/intro/")
                assert intro.offset == 3.0
            else:
                assert segment.voiceovers == ()

    def test_intro_voiceover_default_offset(self, source_factory, groups_factory, fixed_now) -> None:
        source = source_factory("dynamic", groups_factory(intro=True, outros=False))
        station = DynamicStation(source, SchedulerConfig(voiceover_offset=7.5))
        station.reset_state(fixed_now)

        intros = [
            s.voiceovers[0] for s in run(station, 30) if s.category == Category.MUSIC
        ]
        assert intros
        assert all(v.offset == 7.5 for v in intros)

    def test_outro_voiceover_ends_at_marker(self, source_factory, groups_factory, fixed_now) -> None:
        """Test outro speech is timed to end at the outro_end marker."""
        source = source_factory("dynamic", groups_factory(markers=True))
        station = DynamicStation(source)
        station.reset_state(fixed_now)

        outros = [
            v
            for s in run(station, 300)
            for v in s.voiceovers
            if "/to_adverts/" in v.path
        ]
        assert outros
        assert all(v.offset == 170.0 - 4.0 for v in outros)

    def test_outro_voiceover_default_offset(self, dynamic_source, fixed_now) -> None:
        station = DynamicStation(dynamic_source)
        station.reset_state(fixed_now)

        for segment in run(station, 300):
            for voiceover in segment.voiceovers:
                assert segment.category == Category.MUSIC
                assert voiceover.offset == segment.info.duration - 5.0 - voiceover.duration

    def test_missing_transition_lists_fall_back_to_tracks(
        self, source_factory, segments_factory, fixed_now
    ) -> None:
        source = source_factory("dynamic", {"track": segments_factory("track", [60.0] * 4)})
        station = DynamicStation(source)
        station.reset_state(fixed_now)

        assert all(s.category == Category.MUSIC for s in run(station, 40))


class TestPeekSegment:
    """Tests for history lookups and simulated peeks."""

    def test_peek_current_is_idempotent(self, dynamic_source, fixed_now) -> None:
        """Test peek(0) repeats the same answer without touching state."""
        station = DynamicStation(dynamic_source)
        station.reset_state(fixed_now)
        segment = station.next_segment()
        before = station.state.to_dict()

        peeks = [station.peek_segment(0) for _ in range(5)]

        assert all(p == peeks[0] for p in peeks)
        assert dynamic_source.resolve_object_path(peeks[0]) == segment.info
        assert station.state.to_dict() == before

    def test_peek_before_first_segment(self, dynamic_source, fixed_now) -> None:
        station = DynamicStation(dynamic_source)
        station.reset_state(fixed_now)
        assert station.peek_segment(0) is None

        run(station, 3)
        assert station.peek_segment(-3) is None
        assert station.peek_segment(-10) is None

    def test_backward_peek_rebuilds_history(self, dynamic_source, fixed_now) -> None:
        """Test peek(-5) after 10 segments matches a 5-segment replay."""
        station = DynamicStation(dynamic_source, SchedulerConfig(history_limit=2))
        station.reset_state(fixed_now)
        run(station, 10)
        before = station.state.to_dict()

        reference = DynamicStation(dynamic_source, SchedulerConfig(history_limit=2))
        reference.reset_state(fixed_now)
        expected = []
        for _ in range(10):
            reference.next_segment()
            expected.append(reference.peek_segment(0))

        # Within the history window
        assert station.peek_segment(0) == expected[9]
        assert station.peek_segment(-1) == expected[8]
        # Beyond it, rebuilt by replay
        assert station.peek_segment(-5) == expected[4]
        assert station.peek_segment(-9) == expected[0]
        assert station.state.to_dict() == before

    def test_forward_peek_leaves_state_alone(self, dynamic_source, fixed_now) -> None:
        station = DynamicStation(dynamic_source)
        station.reset_state(fixed_now)
        run(station, 4)
        before = station.state.to_dict()

        assert station.peek_segment(3) is not None
        assert station.state.to_dict() == before

    def test_forward_peek_matches_fixed_playlist(self, fixed_source, fixed_now) -> None:
        station = FixedPlaylistStation(fixed_source)
        station.reset_state(fixed_now)
        station.next_segment()

        peeked = [station.peek_segment(offset) for offset in (1, 2, 3)]
        actual = [station.next_segment().info for _ in range(3)]

        assert [fixed_source.resolve_object_path(p) for p in peeked] == actual

    def test_forward_peek_matches_when_no_lookahead_entropy(
        self, source_factory, groups_factory, fixed_now
    ) -> None:
        """Test peeks predict the schedule when no outro voiceovers are drawn."""
        source = source_factory("dynamic", groups_factory(outros=False))
        station = DynamicStation(source)
        station.reset_state(fixed_now)
        run(station, 5)

        for _ in range(20):
            predicted = station.peek_segment(1)
            assert source.resolve_object_path(predicted) == station.next_segment().info

    def test_forward_peek_reflects_state_at_call_time(self, dynamic_source, fixed_now) -> None:
        """Forward peeks simulate from whatever the state is when called.

        This is intended: anything that consumes entropy on the live station
        after a peek (e.g. an outro voiceover draw) can make the real next
        segment differ from an earlier forecast.
        """
        station = DynamicStation(dynamic_source)
        station.reset_state(fixed_now)
        run(station, 6)

        station.state.generator.next()
        forecast = station.clone(keep_state=True)
        forecast.lookahead_enabled = False
        expected = forecast.next_segment().info

        assert dynamic_source.resolve_object_path(station.peek_segment(1)) == expected
        assert forecast.state.generator.index > station.state.generator.index


class TestGetSyncedSegment:
    """Tests for reconstructing the segment on air."""

    def test_finds_segment_at_time(self, fixed_source, fixed_now, fixed_epoch_ms) -> None:
        station = FixedPlaylistStation(fixed_source)
        epoch = datetime(2024, 3, 1, tzinfo=timezone.utc)

        segment = station.get_synced_segment(epoch + timedelta(seconds=350))

        assert segment.info.path == "data/test_fm/track/track_2.ogg"
        assert segment.start_timestamp == fixed_epoch_ms + 300_000
        now_ms = (epoch + timedelta(seconds=350)).timestamp() * 1000
        assert segment.position_ms(now_ms) == 50_000

    def test_segment_ending_exactly_now_is_skipped(self, fixed_source, fixed_epoch_ms) -> None:
        """Test a segment ending at `now` is over; the next one is on air."""
        station = FixedPlaylistStation(fixed_source)
        epoch = datetime(2024, 3, 1, tzinfo=timezone.utc)

        segment = station.get_synced_segment(epoch + timedelta(seconds=1000))

        # 1000s = 2 full cycles (900s) + 100s, so track 0 just ended
        assert segment.info.path == "data/test_fm/track/track_1.ogg"
        assert segment.start_timestamp == fixed_epoch_ms + 1_000_000

    def test_sync_is_stable_within_a_second(self, dynamic_source, fixed_now) -> None:
        station = DynamicStation(dynamic_source)
        moment = datetime(2024, 3, 1, 5, 30, tzinfo=timezone.utc)

        first = station.get_synced_segment(moment)
        second = station.get_synced_segment(moment + timedelta(milliseconds=500))

        assert first.info == second.info
        assert first.start_timestamp == second.start_timestamp

    def test_sync_matches_live_playback(self, dynamic_source) -> None:
        """Test syncing lands on the segment a station playing since the epoch airs."""
        moment = datetime(2024, 3, 1, 3, 0, tzinfo=timezone.utc)
        now_ms = moment.timestamp() * 1000

        live = DynamicStation(dynamic_source)
        live.reset_state(moment)
        while True:
            segment = live.next_segment()
            if segment.end_timestamp > now_ms:
                break

        synced = DynamicStation(dynamic_source).get_synced_segment(moment)
        assert synced == segment

    def test_playback_continues_after_sync(self, dynamic_source) -> None:
        station = DynamicStation(dynamic_source)
        synced = station.get_synced_segment(datetime(2024, 3, 2, tzinfo=timezone.utc))

        following = station.next_segment()
        assert following.start_timestamp == synced.end_timestamp

    def test_naive_datetime_is_utc(self, fixed_source) -> None:
        station = FixedPlaylistStation(fixed_source)
        aware = station.get_synced_segment(datetime(2024, 3, 1, 1, tzinfo=timezone.utc))
        naive = station.get_synced_segment(datetime(2024, 3, 1, 1))
        assert aware == naive

    def test_empty_track_list_fails(self, source_factory, fixed_now) -> None:
        station = DynamicStation(source_factory("dynamic", {"track": ()}))
        with pytest.raises(SelectionError):
            station.get_synced_segment(fixed_now)

    def test_zero_length_segments_fail(self, source_factory, segments_factory, fixed_now) -> None:
        """Test a schedule that never advances raises instead of looping."""
        source = source_factory("static", {"track": segments_factory("track", [0.0, 0.0])})
        station = FixedPlaylistStation(source)
        with pytest.raises(SelectionError):
            station.get_synced_segment(fixed_now)

    @pytest.mark.parametrize(
        "durations",
        [[-10.0, 10.0], [float("nan"), 100.0], [100.0, float("inf")]],
    )
    def test_invalid_durations_fail(
        self, source_factory, segments_factory, fixed_now, durations
    ) -> None:
        """Test negative or non-finite durations raise instead of looping."""
        source = source_factory("static", {"track": segments_factory("track", durations)})
        station = FixedPlaylistStation(source)
        with pytest.raises(SelectionError, match="invalid duration"):
            station.get_synced_segment(fixed_now)

    def test_negative_audible_duration_fails(
        self, source_factory, segments_factory, fixed_now
    ) -> None:
        source = source_factory(
            "static",
            {"track": segments_factory("track", [100.0], audible_duration=-5.0)},
        )
        station = FixedPlaylistStation(source)
        with pytest.raises(SelectionError, match="invalid duration"):
            station.get_synced_segment(fixed_now)


class TestCreateStation:
    """Tests for the station factory."""

    @pytest.mark.parametrize(
        "station_type,expected",
        [
            ("static", FixedPlaylistStation),
            ("talkshow", TalkshowStation),
            ("dynamic", DynamicStation),
        ],
    )
    def test_picks_class_by_type(
        self, source_factory, segments_factory, station_type, expected
    ) -> None:
        source = source_factory(station_type, {"track": segments_factory("track", [60.0])})
        station = create_station(source)
        assert type(station) is expected
        assert station.state is not None

    def test_passes_config(self, fixed_source) -> None:
        config = SchedulerConfig(history_limit=5)
        station = create_station(fixed_source, config)
        assert station.config is config
