"""Tests for speaker rotation."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from conftest import FakeLoop
from server.player import Player
from server.room import Room
from server.speakers import current_speaker, sync_speaker, advance_speaker
from server.timers import PhaseTimer


def make_room(order=("a", "b", "c", "d")):
    room = Room("ABCD", PhaseTimer(FakeLoop()))
    for key in order:
        room.add_player(Player(key, key.upper()))
    room.speaking_order = list(order)
    return room


class TestCurrentSpeaker:
    def test_starts_at_base(self):
        room = make_room()
        assert current_speaker(room, 0) == "a"
        assert current_speaker(room, 2) == "c"

    def test_skips_eliminated_and_wraps(self):
        room = make_room()
        room.eliminated_keys = {"d", "a"}
        assert current_speaker(room, 3) == "b"

    def test_none_when_all_eliminated(self):
        room = make_room()
        room.eliminated_keys = {"a", "b", "c", "d"}
        assert current_speaker(room) is None

    def test_none_without_order(self):
        room = make_room(())
        assert current_speaker(room) is None


class TestRotation:
    def test_advance_one_step(self):
        room = make_room()
        sync_speaker(room)
        assert room.current_speaker_key == "a"
        assert advance_speaker(room) == "b"
        assert advance_speaker(room) == "c"

    def test_advance_snaps_past_eliminated(self):
        room = make_room()
        sync_speaker(room)
        room.eliminated_keys.add("b")
        assert advance_speaker(room) == "c"
        assert room.current_speaker_index == 2

    def test_advance_wraps(self):
        room = make_room()
        room.current_speaker_index = 3
        sync_speaker(room)
        assert advance_speaker(room) == "a"

    def test_sync_moves_off_eliminated_speaker(self):
        room = make_room()
        room.current_speaker_index = 1
        sync_speaker(room)
        room.eliminated_keys.add("b")
        assert sync_speaker(room) == "c"

    def test_speaker_always_living(self):
        room = make_room()
        sync_speaker(room)
        room.eliminated_keys = {"a", "c"}
        for _ in range(6):
            key = advance_speaker(room)
            assert key in ("b", "d")
