"""Speaker rotation over the fixed per-game speaking order.

The host advances the base index one step per speaker:next; the current
speaker is always the first living player at or after that index.
"""

from typing import Optional
from server.room import Room


def current_speaker(room: Room, base_index: Optional[int] = None) -> Optional[str]:
    """First living key scanning forward (with wrap) from base_index."""
    order = room.speaking_order
    if not order:
        return None
    if base_index is None:
        base_index = room.current_speaker_index
    for step in range(len(order)):
        key = order[(base_index + step) % len(order)]
        if key not in room.eliminated_keys:
            return key
    return None


def sync_speaker(room: Room) -> Optional[str]:
    """Snap the current speaker onto a living player from the current index.

    Called on entry to each discussion phase, so a speaker eliminated in the
    previous vote hands over to their living successor.
    """
    key = current_speaker(room)
    room.current_speaker_key = key
    if key is not None:
        room.current_speaker_index = room.speaking_order.index(key)
    return key


def advance_speaker(room: Room) -> Optional[str]:
    """Move one step past the current speaker and snap to a living player."""
    if not room.speaking_order:
        return None
    room.current_speaker_index = (room.current_speaker_index + 1) % len(room.speaking_order)
    return sync_speaker(room)
