"""Phase controller: the room state machine.

lobby -> role -> discuss -> vote -> results -> discuss (next round) | lobby

Every handler validates authority and phase first, then mutates the room
synchronously and hands the resulting messages to `publish`. Nothing here
awaits, so a handler and a timer callback can never interleave.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Any, Callable, Optional
from shared.constants import (
    ErrorCode, MessageType, Phase, SETTABLE_PHASES, DEFAULT_PHASE_DURATIONS_MS,
)
from shared.models import (
    JoinOrCreate, Leave, RequestRole, StartGame, SetPhase, NextSpeaker,
    CastVote, NextRound, EndGame,
)
from server.registry import RoomRegistry
from server.room import Room
from server import roles, speakers, voting, win

logger = logging.getLogger(__name__)


@dataclass
class PhaseConfig:
    """auto_advance layers phase timers on top of the host's commands."""
    auto_advance: bool = True
    durations_ms: dict[Phase, int] = field(
        default_factory=lambda: dict(DEFAULT_PHASE_DURATIONS_MS))

    @staticmethod
    def manual() -> PhaseConfig:
        return PhaseConfig(auto_advance=False)


@dataclass
class Outbound:
    msg_type: MessageType
    payload: dict
    to: Optional[str] = None  # player key; None means the whole room


@dataclass
class Outcome:
    """What the transport acknowledges back to the caller."""
    error: Optional[ErrorCode] = None
    room: Optional[Room] = None
    extra: dict = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.error is None


Publisher = Callable[[Room, list[Outbound]], None]


def room_update(room: Room) -> Outbound:
    return Outbound(MessageType.ROOM_UPDATE, room.get_snapshot().to_dict())


def announce(msg: str) -> Outbound:
    return Outbound(MessageType.ANNOUNCE, {"msg": msg})


class PhaseController:
    def __init__(self, registry: RoomRegistry, publish: Publisher,
                 config: PhaseConfig = None, rng: random.Random = None):
        self.registry = registry
        self.publish = publish
        self.config = config or PhaseConfig()
        self.rng = rng
        self._handlers = {
            JoinOrCreate: self.join_or_create,
            Leave: self.leave,
            RequestRole: self.request_role,
            StartGame: self.start_game,
            SetPhase: self.set_phase,
            NextSpeaker: self.next_speaker,
            CastVote: self.cast_vote,
            NextRound: self.next_round,
            EndGame: self.end_game,
        }

    def handle(self, request, connection: Any = None) -> Outcome:
        handler = self._handlers[type(request)]
        if isinstance(request, JoinOrCreate):
            return handler(request, connection)
        room = self.registry.get(request.room_code)
        if not room:
            return Outcome(ErrorCode.ROOM_NOT_FOUND)
        return handler(room, request)

    def _host_only(self, room: Room, key: str) -> Optional[ErrorCode]:
        if key not in room.players:
            return ErrorCode.UNKNOWN_PLAYER
        if not room.is_host(key):
            return ErrorCode.NOT_HOST
        return None

    # ── identity ──

    def join_or_create(self, request: JoinOrCreate, connection: Any = None) -> Outcome:
        error, room, rejoined = self.registry.join_or_create(request, connection)
        if error:
            return Outcome(error)
        self.publish(room, [room_update(room)])
        return Outcome(room=room, extra={"roomCode": room.code, "rejoined": rejoined})

    def leave(self, room: Room, request: Leave) -> Outcome:
        return self.disconnect(room, request.player_key)

    def disconnect(self, room: Room, key: str, connection: Any = None) -> Outcome:
        error, host_changed = self.registry.disconnect(room, key, connection)
        if error:
            return Outcome(error)
        messages = []
        if host_changed:
            messages.append(announce(f"{room.players[room.host_key].name} is now the host."))
        messages.append(room_update(room))
        self.publish(room, messages)
        return Outcome(room=room)

    # ── roles ──

    def request_role(self, room: Room, request: RequestRole) -> Outcome:
        error, payload = roles.request_role(room, request.player_key)
        if error:
            return Outcome(error)
        if payload is not None:
            self.publish(room, [Outbound(MessageType.ROLE, payload.to_dict(), to=request.player_key)])
        return Outcome(room=room, extra={"already": payload is None})

    def start_game(self, room: Room, request: StartGame) -> Outcome:
        error = self._host_only(room, request.player_key) or roles.assign_roles(room, self.rng)
        if error:
            return Outcome(error)
        logger.info("Room %s game started with %d players", room.code, len(room.players))
        self._arm(room)
        self.publish(room, [room_update(room)])
        return Outcome(room=room)

    # ── manual transitions ──

    def set_phase(self, room: Room, request: SetPhase) -> Outcome:
        error = self._host_only(room, request.player_key)
        if error:
            return Outcome(error)
        try:
            target = Phase(request.phase)
        except ValueError:
            return Outcome(ErrorCode.INVALID_PHASE)
        if target == Phase.LOBBY:
            # Leaving a game goes through game:end, which resets it
            return Outcome(ErrorCode.WRONG_PHASE)
        if target not in SETTABLE_PHASES:
            return Outcome(ErrorCode.INVALID_PHASE)

        if target == Phase.DISCUSS:
            if room.phase not in (Phase.ROLE, Phase.VOTE):
                return Outcome(ErrorCode.WRONG_PHASE)
            messages = self._enter_discuss(room)
        elif target == Phase.VOTE:
            error = voting.begin_voting(room)
            if error:
                return Outcome(error)
            messages = self._enter_vote(room)
        else:
            if room.phase != Phase.VOTE:
                return Outcome(ErrorCode.WRONG_PHASE)
            messages = self._finish_voting(room)
        messages.append(room_update(room))
        self.publish(room, messages)
        return Outcome(room=room)

    def next_speaker(self, room: Room, request: NextSpeaker) -> Outcome:
        error = self._host_only(room, request.player_key)
        if error:
            return Outcome(error)
        if room.phase != Phase.DISCUSS:
            return Outcome(ErrorCode.WRONG_PHASE)
        key = speakers.advance_speaker(room)
        messages = []
        if key is not None:
            messages.append(announce(f"{room.players[key].name} is speaking."))
        messages.append(room_update(room))
        self.publish(room, messages)
        return Outcome(room=room)

    def cast_vote(self, room: Room, request: CastVote) -> Outcome:
        error = voting.cast_vote(room, request.player_key, request.target_key)
        if error:
            return Outcome(error)
        messages = [Outbound(MessageType.VOTE_STATUS, room.vote_status().to_dict())]
        if voting.all_voted(room):
            messages.extend(self._finish_voting(room))
        messages.append(room_update(room))
        self.publish(room, messages)
        return Outcome(room=room)

    def next_round(self, room: Room, request: NextRound) -> Outcome:
        error = self._host_only(room, request.player_key)
        if error:
            return Outcome(error)
        if room.phase != Phase.RESULTS:
            return Outcome(ErrorCode.WRONG_PHASE)
        if win.check_win(room).over:
            return Outcome(ErrorCode.GAME_OVER)
        messages = self._next_round(room)
        messages.append(room_update(room))
        self.publish(room, messages)
        return Outcome(room=room)

    def end_game(self, room: Room, request: EndGame) -> Outcome:
        error = self._host_only(room, request.player_key)
        if error:
            return Outcome(error)
        messages = []
        if room.in_game:
            messages.append(announce("The host ended the game."))
            logger.info("Room %s game ended by host", room.code)
        room.reset_game()
        messages.append(room_update(room))
        self.publish(room, messages)
        return Outcome(room=room)

    # ── state transitions ──

    def _enter_discuss(self, room: Room) -> list[Outbound]:
        room.phase = Phase.DISCUSS
        room.votes.clear()
        key = speakers.sync_speaker(room)
        self._arm(room)
        if key is None:
            return []
        return [announce(f"{room.players[key].name} is speaking.")]

    def _enter_vote(self, room: Room) -> list[Outbound]:
        self._arm(room)
        return [Outbound(MessageType.VOTE_STATUS, room.vote_status().to_dict())]

    def _finish_voting(self, room: Room) -> list[Outbound]:
        result = voting.resolve_votes(room)
        if result is None:
            return []
        room.timer.cancel()
        if room.current_speaker_key in room.eliminated_keys:
            speakers.sync_speaker(room)
        messages = [Outbound(MessageType.RESULTS, result.to_dict())]
        reveal = win.reveal_winner(room)
        if reveal is not None:
            logger.info("Room %s game over: %s win", room.code, reveal.winner.value)
            messages.append(Outbound(MessageType.WIN, reveal.to_dict()))
        self._arm(room)
        return messages

    def _next_round(self, room: Room) -> list[Outbound]:
        room.round += 1
        return self._enter_discuss(room)

    def _return_to_lobby(self, room: Room) -> list[Outbound]:
        room.reset_game()
        return [announce("Game over. Back to the lobby.")]

    # ── timers ──

    def _arm(self, room: Room):
        """Start the countdown for the phase just entered, if timers are on."""
        duration = self.config.durations_ms.get(room.phase)
        if not self.config.auto_advance or not duration:
            room.timer.cancel()
            return
        phase, round_number, code = room.phase, room.round, room.code
        room.timer.arm(phase, duration, lambda: self._on_timer(code, phase, round_number))

    def _on_timer(self, code: str, phase: Phase, round_number: int):
        room = self.registry.get(code)
        if not room or room.phase != phase or room.round != round_number:
            return
        logger.info("Room %s %s timer expired in round %d", code, phase.value, round_number)
        if phase == Phase.ROLE:
            messages = self._enter_discuss(room)
        elif phase == Phase.DISCUSS:
            voting.begin_voting(room)
            messages = self._enter_vote(room)
        elif phase == Phase.VOTE:
            messages = self._finish_voting(room)
        elif win.check_win(room).over:
            messages = self._return_to_lobby(room)
        else:
            messages = self._next_round(room)
        messages.append(room_update(room))
        self.publish(room, messages)
