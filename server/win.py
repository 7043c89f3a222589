"""Win evaluation from living imposter and crew counts."""

from dataclasses import dataclass
from typing import Optional
from shared.constants import Winner
from shared.models import WinReveal
from server.room import Room


@dataclass
class WinCheck:
    over: bool
    winner: Optional[Winner] = None


def check_win(room: Room) -> WinCheck:
    living = room.living_keys()
    imposters = sum(1 for k in living if k in room.imposter_keys)
    crew = len(living) - imposters
    if imposters <= 0:
        return WinCheck(True, Winner.CREW)
    if imposters >= crew:
        return WinCheck(True, Winner.IMPOSTERS)
    return WinCheck(False)


def reveal_winner(room: Room) -> Optional[WinReveal]:
    """Full imposter roster for the end-of-game announcement.

    Returns it only the first time it is asked for in a finished game.
    """
    result = check_win(room)
    if not room.in_game or not result.over or room.win_revealed:
        return None
    room.win_revealed = True
    imposters = [room.players[k].to_state(k in room.eliminated_keys)
                 for k in room.players if k in room.imposter_keys]
    return WinReveal(winner=result.winner, imposters=imposters)
