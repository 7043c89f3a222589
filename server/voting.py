"""Vote collection, tallying and elimination."""

import logging
from collections import Counter
from typing import Optional
from shared.constants import ErrorCode, Phase, SKIP
from shared.models import EliminatedInfo, RoundResult
from server.room import Room
from server.win import check_win

logger = logging.getLogger(__name__)


def begin_voting(room: Room) -> Optional[ErrorCode]:
    if room.phase != Phase.DISCUSS:
        return ErrorCode.WRONG_PHASE
    room.votes.clear()
    room.phase = Phase.VOTE
    return None


def cast_vote(room: Room, voter_key: str, target_key: str) -> Optional[ErrorCode]:
    """Record (or replace) a living player's vote. Last write wins."""
    if voter_key not in room.players:
        return ErrorCode.UNKNOWN_PLAYER
    if room.phase != Phase.VOTE:
        return ErrorCode.WRONG_PHASE
    if voter_key in room.eliminated_keys:
        return ErrorCode.ALREADY_ELIMINATED
    if target_key != SKIP:
        if not room.is_living(target_key):
            return ErrorCode.INVALID_TARGET
        if target_key == voter_key:
            return ErrorCode.SELF_VOTE
    room.votes[voter_key] = target_key
    return None


def all_voted(room: Room) -> bool:
    status = room.vote_status()
    return status.voted_count >= status.total


def count_votes(room: Room) -> Counter:
    """Votes per target among living voters, ignoring skips and dead targets."""
    tally = Counter()
    for voter_key, target_key in room.votes.items():
        if voter_key in room.eliminated_keys or target_key == SKIP:
            continue
        if not room.is_living(target_key):
            continue
        tally[target_key] += 1
    return tally


def pick_elimination(tally: Counter) -> Optional[str]:
    """The single top target, or None on a tie or when nobody was named."""
    if not tally:
        return None
    top = max(tally.values())
    leaders = [key for key, count in tally.items() if count == top]
    if len(leaders) == 1 and top > 0:
        return leaders[0]
    return None


def resolve_votes(room: Room) -> Optional[RoundResult]:
    """Tally the current votes and move to results.

    Missing voters count as abstentions. Returns None, changing nothing,
    when the room is no longer voting, so a late timer and the final vote
    can't both tally. Votes are cleared once counted.
    """
    if room.phase != Phase.VOTE:
        return None

    tally = count_votes(room)
    eliminated_key = pick_elimination(tally)
    eliminated = None
    if eliminated_key is not None:
        room.eliminated_keys.add(eliminated_key)
        eliminated = EliminatedInfo(
            key=eliminated_key,
            name=room.players[eliminated_key].name,
            was_imposter=eliminated_key in room.imposter_keys,
        )
    room.votes.clear()
    room.phase = Phase.RESULTS
    logger.info("Room %s round %d tally %s -> %s", room.code, room.round,
                dict(tally), eliminated_key or "no elimination")
    return RoundResult(eliminated=eliminated, winner=check_win(room).winner)
