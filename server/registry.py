"""Room registry: room codes, joins, rejoins and disconnects."""

import logging
import random
from typing import Any, Optional
from shared.constants import (
    ErrorCode, Phase, ROOM_CODE_ALPHABET, ROOM_CODE_LENGTH, EMPTY_ROOM_TTL, SKIP,
)
from shared.models import JoinOrCreate
from server.player import Player
from server.room import Room
from server.timers import PhaseTimer

logger = logging.getLogger(__name__)


class RoomRegistry:
    """Owns every live room in the process.

    All access happens on the event loop thread, one handler at a time, so
    the dict needs no lock.
    """

    def __init__(self, loop, rng: random.Random = None):
        self.loop = loop
        self.rng = rng or random.Random()
        self.rooms: dict[str, Room] = {}

    def _generate_room_code(self) -> str:
        while True:
            code = ''.join(self.rng.choices(ROOM_CODE_ALPHABET, k=ROOM_CODE_LENGTH))
            if code not in self.rooms:
                return code

    def get(self, code: str) -> Optional[Room]:
        return self.rooms.get(code)

    def create_room(self, host_key: str, name: str, connection: Any = None) -> Room:
        code = self._generate_room_code()
        room = Room(code, PhaseTimer(self.loop))
        room.add_player(Player(host_key, name, connection))
        self.rooms[code] = room
        logger.info("Room %s created by %s", code, host_key)
        return room

    def join_or_create(self, request: JoinOrCreate,
                       connection: Any = None) -> tuple[Optional[ErrorCode], Optional[Room], bool]:
        """Create a room, join one, or reattach a known player.

        Returns (error, room, rejoined). Nothing is mutated when error is set.
        """
        if not request.name:
            return ErrorCode.NAME_REQUIRED, None, False
        if not request.player_key or request.player_key == SKIP:
            return ErrorCode.IDENTITY_REQUIRED, None, False

        if request.create:
            room = self.create_room(request.player_key, request.name, connection)
            return None, room, False

        room = self.rooms.get(request.room_code)
        if not room:
            return ErrorCode.ROOM_NOT_FOUND, None, False

        player = room.players.get(request.player_key)
        if player:
            # Rejoin: game state, eliminations and role delivery are untouched
            player.attach(connection, request.name)
            self._cancel_reclaim(room)
            logger.info("Player %s rejoined room %s", player.key, room.code)
            return None, room, True

        if room.phase != Phase.LOBBY:
            return ErrorCode.GAME_ALREADY_STARTED, None, False

        room.add_player(Player(request.player_key, request.name, connection))
        self._cancel_reclaim(room)
        logger.info("Player %s joined room %s", request.player_key, room.code)
        return None, room, False

    def disconnect(self, room: Room, key: str,
                   connection: Any = None) -> tuple[Optional[ErrorCode], bool]:
        """Mark a player offline and migrate host if needed.

        When `connection` is given, only that connection is detached, so a
        stale socket closing after a rejoin leaves the player online.
        Returns (error, host_changed).
        """
        player = room.players.get(key)
        if not player:
            return ErrorCode.UNKNOWN_PLAYER, False
        if connection is not None and player.connection is not connection:
            return None, False

        player.detach()
        host_changed = room.is_host(key) and room.promote_host()
        if host_changed:
            logger.info("Room %s host moved from %s to %s", room.code, key, room.host_key)
        self.release_if_idle(room)
        return None, host_changed

    # ── reclamation ──

    def release_if_idle(self, room: Room):
        """Schedule the room for removal once nobody is connected."""
        if room.connected_players() or room.reclaim_handle is not None:
            return
        room.reclaim_handle = self.loop.call_later(EMPTY_ROOM_TTL, self._reclaim, room.code)

    def _cancel_reclaim(self, room: Room):
        if room.reclaim_handle is not None:
            room.reclaim_handle.cancel()
            room.reclaim_handle = None

    def _reclaim(self, code: str):
        room = self.rooms.get(code)
        if not room:
            return
        room.reclaim_handle = None
        if room.connected_players():
            return
        room.timer.cancel()
        del self.rooms[code]
        logger.info("Room %s reclaimed after %ss idle", code, EMPTY_ROOM_TTL)
