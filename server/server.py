"""WebSocket server: connection loop, request dispatch, room fan-out."""

import asyncio
import logging
from typing import Optional
import websockets
from websockets.asyncio.server import serve, broadcast, ServerConnection

from shared.constants import DEFAULT_HOST, DEFAULT_PORT, ErrorCode, MessageType
from shared.models import JoinOrCreate, Leave, parse_request
from shared.protocol import create_message, create_ack, parse_message, request_id_of
from server.controller import PhaseController, PhaseConfig, Outbound, Outcome
from server.registry import RoomRegistry
from server.room import Room

logger = logging.getLogger(__name__)


class GameServer:
    def __init__(self, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT,
                 config: PhaseConfig = None, loop=None):
        self.host = host
        self.port = port
        self.config = config or PhaseConfig()
        self.registry: Optional[RoomRegistry] = None
        self.controller: Optional[PhaseController] = None
        self.ws_to_player: dict[ServerConnection, tuple[str, str]] = {}  # ws -> (room_code, key)
        if loop is not None:
            self._bind(loop)

    def _bind(self, loop):
        self.registry = RoomRegistry(loop)
        self.controller = PhaseController(self.registry, self._publish, self.config)

    @property
    def rooms(self) -> dict[str, Room]:
        return self.registry.rooms if self.registry else {}

    async def handle_connection(self, ws: ServerConnection):
        logger.info("New connection from %s", getattr(ws, "remote_address", None))
        try:
            async for raw_message in ws:
                await ws.send(self._handle_message(ws, raw_message))
        except websockets.exceptions.ConnectionClosed:
            pass
        finally:
            binding = self.ws_to_player.pop(ws, None)
            if binding:
                self._drop(ws, *binding)

    def _handle_message(self, ws, raw_message: str) -> str:
        """Run one request to completion and return its ack."""
        request_id = request_id_of(raw_message)
        try:
            msg_type, payload = parse_message(raw_message)
            request = parse_request(msg_type, payload)
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Rejected malformed message: %s", e)
            return create_ack(request_id, ErrorCode.BAD_REQUEST)

        if not isinstance(request, JoinOrCreate):
            # The caller may only act as the player this connection joined as
            if self.ws_to_player.get(ws) != (request.room_code, request.player_key):
                return create_ack(request_id, ErrorCode.UNKNOWN_PLAYER)

        logger.debug("Received %s from %s", msg_type.value, request.player_key or "new")
        try:
            outcome = self.controller.handle(request, ws)
        except Exception:
            logger.exception("Error handling %s from %s", msg_type.value, request.player_key)
            return create_ack(request_id, ErrorCode.SERVER_ERROR)

        if outcome.ok:
            self._track(ws, request, outcome)
        return create_ack(request_id, outcome.error, **outcome.extra)

    def _track(self, ws, request, outcome: Outcome):
        if isinstance(request, JoinOrCreate):
            binding = (outcome.room.code, request.player_key)
            previous = self.ws_to_player.get(ws)
            if previous and previous != binding:
                self._drop(ws, *previous)
            # A rejoin supersedes whichever socket held this identity before
            for other, held in list(self.ws_to_player.items()):
                if other is not ws and held == binding:
                    del self.ws_to_player[other]
            self.ws_to_player[ws] = binding
        elif isinstance(request, Leave):
            self.ws_to_player.pop(ws, None)

    def _drop(self, ws, room_code: str, key: str):
        room = self.registry.get(room_code)
        if room:
            self.controller.disconnect(room, key, ws)

    def _publish(self, room: Room, messages: list[Outbound]):
        for out in messages:
            data = create_message(out.msg_type, out.payload)
            if out.to is None:
                targets = [p.connection for p in room.connected_players() if p.connection]
            else:
                player = room.players.get(out.to)
                targets = [player.connection] if player and player.connected and player.connection else []
            if out.msg_type != MessageType.ROOM_UPDATE:
                logger.debug("Room %s -> %s %s", room.code, out.to or "all", out.msg_type.value)
            # broadcast() never blocks. Closed connections are skipped here and
            # the player goes offline when handle_connection sees the close.
            broadcast(targets, data)

    async def run(self):
        if self.controller is None:
            self._bind(asyncio.get_running_loop())
        async with serve(self.handle_connection, self.host, self.port):
            logger.info("Server running on ws://%s:%s (%s)", self.host, self.port,
                        "timed" if self.config.auto_advance else "manual")
            await asyncio.Future()  # run forever


async def main(host: str = DEFAULT_HOST, port: int = DEFAULT_PORT, config: PhaseConfig = None):
    server = GameServer(host, port, config)
    await server.run()
