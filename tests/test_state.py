"""Tests for NowPlayingState reconciliation."""

import base64
import math

import pytest

from notch_nowplaying.adapter.protocol import StreamRecord, decode_line
from notch_nowplaying.state import (
    ABSENT,
    NowPlayingState,
    NowPlayingUpdate,
    format_time,
    reconcile,
)


def full(**payload):
    return StreamRecord(is_diff=False, payload=payload)


def diff(**payload):
    return StreamRecord(is_diff=True, payload=payload)


FULL_PAYLOAD = {
    "title": "Song",
    "artist": "Band",
    "playing": True,
    "duration": 200,
    "elapsedTime": 12.5,
    "artworkData": base64.b64encode(b"PNG").decode(),
    "bundleIdentifier": "com.apple.Music",
}


class TestNowPlayingUpdate:
    def test_all_fields_present(self):
        update = NowPlayingUpdate.from_payload(FULL_PAYLOAD)
        assert update.title == "Song"
        assert update.artist == "Band"
        assert update.is_playing is True
        assert update.duration == 200.0
        assert update.elapsed_time == 12.5
        assert update.artwork == b"PNG"
        assert update.source_app_id == "com.apple.Music"
        assert len(update.present()) == 7

    def test_empty_payload_all_absent(self):
        update = NowPlayingUpdate.from_payload({})
        assert update.present() == frozenset()
        assert update.title is ABSENT

    def test_empty_title_is_absent(self):
        assert NowPlayingUpdate.from_payload({"title": ""}).title is ABSENT

    def test_parent_bundle_identifier_preferred(self):
        update = NowPlayingUpdate.from_payload({
            "bundleIdentifier": "com.apple.WebKit.GPU",
            "parentApplicationBundleIdentifier": "com.apple.Safari",
        })
        assert update.source_app_id == "com.apple.Safari"

    def test_wrong_types_are_absent(self):
        update = NowPlayingUpdate.from_payload({
            "title": 5,
            "playing": "yes",
            "duration": True,
            "elapsedTime": "3",
            "artworkData": 17,
        })
        assert update.present() == frozenset()

    def test_negative_times_clamped(self):
        update = NowPlayingUpdate.from_payload({"duration": -5, "elapsedTime": -0.1})
        assert update.duration == 0.0
        assert update.elapsed_time == 0.0

    def test_artwork_whitespace_stripped(self):
        encoded = " " + base64.b64encode(b"JPEG").decode() + "\n"
        assert NowPlayingUpdate.from_payload({"artworkData": encoded}).artwork == b"JPEG"

    def test_invalid_artwork_decodes_to_none(self):
        update = NowPlayingUpdate.from_payload({"artworkData": "***"})
        assert update.artwork is None
        assert "artwork" in update.present()


class TestReconcileFull:
    def test_full_record_sets_everything(self):
        state = NowPlayingState()
        changed = reconcile(full(**FULL_PAYLOAD), state)

        assert state == NowPlayingState(
            title="Song",
            artist="Band",
            is_playing=True,
            artwork=b"PNG",
            duration=200.0,
            elapsed_time=12.5,
            source_app_id="com.apple.Music",
        )
        assert len(changed) == 7

    def test_full_records_never_carry_stale_data(self):
        state = NowPlayingState()
        reconcile(full(**FULL_PAYLOAD), state)
        reconcile(full(title="Other"), state)

        assert state == NowPlayingState(title="Other")

    def test_empty_full_record_clears(self):
        state = NowPlayingState()
        reconcile(full(**FULL_PAYLOAD), state)
        changed = reconcile(full(), state)

        assert state == NowPlayingState()
        assert "title" in changed and "is_playing" in changed

    def test_full_record_resets_elapsed_regardless_of_jitter(self):
        state = NowPlayingState(elapsed_time=0.5)
        reconcile(full(title="A"), state)
        assert state.elapsed_time == 0.0


class TestReconcileDiff:
    def test_diff_updates_only_given_fields(self):
        state = NowPlayingState()
        reconcile(full(**FULL_PAYLOAD), state)
        changed = reconcile(diff(artist="Someone"), state)

        assert changed == frozenset({"artist"})
        assert state.artist == "Someone"
        assert state.title == "Song"
        assert state.artwork == b"PNG"

    def test_sequence_of_diffs(self):
        state = NowPlayingState()
        reconcile(full(title="A", duration=100), state)
        reconcile(diff(artist="X"), state)
        reconcile(diff(duration=120), state)
        reconcile(diff(title="B"), state)

        assert state.title == "B"
        assert state.artist == "X"
        assert state.duration == 120.0

    def test_empty_title_in_diff_keeps_title(self):
        state = NowPlayingState(title="Song")
        reconcile(diff(title=""), state)
        assert state.title == "Song"

    def test_scenario_full_then_pause(self):
        state = NowPlayingState()
        for line in (
            '{"diff":false,"payload":{"title":"A","playing":true,"duration":200}}',
            '{"diff":true,"payload":{"playing":false}}',
        ):
            reconcile(decode_line(line), state)

        assert state.title == "A"
        assert state.is_playing is False
        assert state.duration == 200.0
        assert state.elapsed_time == 0.0
        assert state.artist == ""


class TestChangeSuppression:
    def test_is_playing_only_reported_on_flip(self):
        state = NowPlayingState()
        assert reconcile(diff(playing=True), state) == frozenset({"is_playing"})
        assert reconcile(diff(playing=True), state) == frozenset()
        assert reconcile(diff(playing=False), state) == frozenset({"is_playing"})

    @pytest.mark.parametrize("new", [10.5, 11.0, 9.0, 9.5])
    def test_elapsed_within_jitter_suppressed(self, new):
        state = NowPlayingState(elapsed_time=10.0)
        assert reconcile(diff(elapsedTime=new), state) == frozenset()
        assert state.elapsed_time == 10.0

    @pytest.mark.parametrize("new", [11.01, 8.99, 0.0, 120.0])
    def test_elapsed_beyond_jitter_applied(self, new):
        state = NowPlayingState(elapsed_time=10.0)
        assert reconcile(diff(elapsedTime=new), state) == frozenset({"elapsed_time"})
        assert state.elapsed_time == new

    def test_unchanged_values_not_reported(self):
        state = NowPlayingState()
        reconcile(full(**FULL_PAYLOAD), state)
        assert reconcile(full(**FULL_PAYLOAD), state) == frozenset()

    def test_explicit_is_diff_overrides_record(self):
        state = NowPlayingState(title="A", artist="B")
        reconcile(full(title="C"), state, is_diff=True)
        assert state.artist == "B"


class TestFromUpdate:
    def test_present_fields_assigned_without_jitter_rule(self):
        update = NowPlayingUpdate.from_payload({"title": "A", "elapsedTime": 0.4})
        state = NowPlayingState.from_update(update)
        assert state == NowPlayingState(title="A", elapsed_time=0.4)


class TestSnapshot:
    def test_snapshot_is_independent(self):
        state = NowPlayingState(title="A")
        copy = state.snapshot()
        state.title = "B"
        assert copy.title == "A"

    def test_to_dict_reports_artwork_size(self):
        data = NowPlayingState(artwork=b"1234").to_dict()
        assert data["artwork_bytes"] == 4
        assert NowPlayingState().to_dict()["artwork_bytes"] is None


class TestFormatTime:
    @pytest.mark.parametrize("seconds, expected", [
        (0, "0:00"),
        (59.9, "0:59"),
        (61, "1:01"),
        (3600, "60:00"),
        (-1, "0:00"),
        (math.inf, "0:00"),
        (math.nan, "0:00"),
    ])
    def test_format(self, seconds, expected):
        assert format_time(seconds) == expected
