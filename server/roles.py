"""Role assignment: secret word, imposter partition, pull-based role delivery."""

import random
from typing import Optional
from shared.constants import ErrorCode, Phase, Role, WORDS, MIN_PLAYERS
from shared.models import RolePayload
from server.room import Room


def imposter_count(n: int) -> int:
    """3->1, 5->2, 7->3 ... always fewer imposters than players."""
    return max(1, (n - 1) // 2)


def assign_roles(room: Room, rng: random.Random = None) -> Optional[ErrorCode]:
    """Deal a new game: word, imposters, speaking order. Enters the role phase.

    Returns an error without touching the room if the game can't start.
    """
    rng = rng or random
    if room.phase != Phase.LOBBY:
        return ErrorCode.WRONG_PHASE
    keys = list(room.players)
    if len(keys) < MIN_PLAYERS:
        return ErrorCode.TOO_FEW_PLAYERS

    room.reset_game()
    room.secret_word = rng.choice(WORDS)

    # Two independent shuffles so the speaking order leaks nothing about roles
    dealt = list(keys)
    rng.shuffle(dealt)
    room.imposter_keys = set(dealt[:imposter_count(len(keys))])

    order = list(keys)
    rng.shuffle(order)
    room.speaking_order = order

    room.round = 1
    room.phase = Phase.ROLE
    return None


def role_for(room: Room, key: str) -> RolePayload:
    if key in room.imposter_keys:
        return RolePayload(room.code, Role.IMPOSTER, None, room.round)
    return RolePayload(room.code, Role.CREW, room.secret_word, room.round)


def request_role(room: Room, key: str) -> tuple[Optional[ErrorCode], Optional[RolePayload]]:
    """Hand a player their role once per game.

    Returns (error, payload). A repeat request succeeds with payload None.
    """
    if key not in room.players:
        return ErrorCode.UNKNOWN_PLAYER, None
    if room.phase != Phase.ROLE:
        return ErrorCode.WRONG_PHASE, None
    if key in room.eliminated_keys:
        return ErrorCode.ALREADY_ELIMINATED, None
    if key in room.revealed_keys:
        return None, None
    room.revealed_keys.add(key)
    return None, role_for(room, key)
