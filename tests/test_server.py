"""Tests for the websocket server's dispatch, acks and fan-out."""

import asyncio
import json
import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest

from shared.constants import MessageType, Phase
from shared.protocol import create_message
from server.controller import PhaseConfig
import server.server as server_module
from server.server import GameServer


class FakeConnection:
    """Stands in for a websockets ServerConnection."""

    def __init__(self, messages=()):
        self.incoming = list(messages)
        self.sent = []
        self.remote_address = ("127.0.0.1", 0)

    def __aiter__(self):
        return self._iter()

    async def _iter(self):
        for message in self.incoming:
            yield message

    async def send(self, data):
        self.sent.append(json.loads(data))

    def of_type(self, msg_type):
        return [m["payload"] for m in self.sent if m["type"] == msg_type.value]


def fake_broadcast(connections, data):
    for connection in connections:
        connection.sent.append(json.loads(data))


@pytest.fixture
def game_server(loop, monkeypatch):
    monkeypatch.setattr(server_module, "broadcast", fake_broadcast)
    return GameServer(config=PhaseConfig.manual(), loop=loop)


def request(game_server, ws, msg_type, request_id=None, **payload):
    raw = create_message(msg_type, payload, request_id=request_id)
    ack = json.loads(game_server._handle_message(ws, raw))
    assert ack["type"] == "ack"
    return ack


def create_room(game_server, ws, key="p0", name="Host"):
    ack = request(game_server, ws, MessageType.JOIN_OR_CREATE, create=True, playerKey=key, name=name)
    assert ack["payload"]["ok"]
    return ack["payload"]["roomCode"]


class TestDispatch:
    def test_bad_frame(self, game_server):
        ws = FakeConnection()
        ack = json.loads(game_server._handle_message(ws, "{oops"))
        assert ack["payload"]["ok"] is False
        assert ack["payload"]["error"] == "BadRequest"

    def test_missing_required_field(self, game_server):
        ws = FakeConnection()
        ack = request(game_server, ws, MessageType.CAST_VOTE, request_id=3, roomCode="ABCD", playerKey="k")
        assert ack["id"] == 3
        assert ack["payload"]["error"] == "BadRequest"

    def test_create_and_broadcast(self, game_server):
        ws = FakeConnection()
        ack = request(game_server, ws, MessageType.JOIN_OR_CREATE, request_id="r1",
                      create=True, playerKey="p0", name="Host")
        assert ack["id"] == "r1"
        assert ack["payload"]["ok"] is True
        code = ack["payload"]["roomCode"]
        updates = ws.of_type(MessageType.ROOM_UPDATE)
        assert updates[-1]["roomCode"] == code
        assert updates[-1]["hostKey"] == "p0"
        assert game_server.ws_to_player[ws] == (code, "p0")

    def test_name_required(self, game_server):
        ws = FakeConnection()
        ack = request(game_server, ws, MessageType.JOIN_OR_CREATE, create=True, playerKey="p0", name="  ")
        assert ack["payload"]["error"] == "NameRequired"
        assert game_server.rooms == {}

    def test_cannot_act_as_another_player(self, game_server):
        host, other = FakeConnection(), FakeConnection()
        code = create_room(game_server, host)
        ack = request(game_server, other, MessageType.START_GAME, roomCode=code, playerKey="p0")
        assert ack["payload"]["error"] == "UnknownPlayer"

    def test_handler_failure_acked(self, game_server, monkeypatch):
        ws = FakeConnection()
        code = create_room(game_server, ws)

        def boom(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(game_server.controller, "handle", boom)
        ack = request(game_server, ws, MessageType.START_GAME, roomCode=code, playerKey="p0")
        assert ack["payload"]["error"] == "ServerError"


class TestGameFlow:
    def join_three(self, game_server):
        conns = [FakeConnection() for _ in range(3)]
        code = create_room(game_server, conns[0])
        for i, ws in enumerate(conns[1:], start=1):
            ack = request(game_server, ws, MessageType.JOIN_OR_CREATE,
                          roomCode=code.lower(), playerKey=f"p{i}", name=f"Player {i}")
            assert ack["payload"]["ok"]
        return code, conns

    def test_role_is_private(self, game_server):
        code, conns = self.join_three(game_server)
        assert request(game_server, conns[0], MessageType.START_GAME,
                       roomCode=code, playerKey="p0")["payload"]["ok"]
        ack = request(game_server, conns[1], MessageType.REQUEST_ROLE, roomCode=code, playerKey="p1")
        assert ack["payload"] == {"ok": True, "already": False}
        assert len(conns[1].of_type(MessageType.ROLE)) == 1
        assert conns[0].of_type(MessageType.ROLE) == []
        assert conns[2].of_type(MessageType.ROLE) == []
        ack = request(game_server, conns[1], MessageType.REQUEST_ROLE, roomCode=code, playerKey="p1")
        assert ack["payload"]["already"] is True
        assert len(conns[1].of_type(MessageType.ROLE)) == 1

    def test_vote_round_reaches_everyone(self, game_server):
        code, conns = self.join_three(game_server)
        request(game_server, conns[0], MessageType.START_GAME, roomCode=code, playerKey="p0")
        request(game_server, conns[0], MessageType.SET_PHASE, roomCode=code, playerKey="p0", phase="discuss")
        request(game_server, conns[0], MessageType.SET_PHASE, roomCode=code, playerKey="p0", phase="vote")
        for i, ws in enumerate(conns):
            request(game_server, ws, MessageType.CAST_VOTE, roomCode=code, playerKey=f"p{i}", targetKey="SKIP")
        for ws in conns:
            results = ws.of_type(MessageType.RESULTS)
            assert results == [{"eliminated": None, "tieOrNoElim": True, "win": None}]
            assert ws.of_type(MessageType.VOTE_STATUS)[-1] == {"votedCount": 3, "total": 3}
        assert game_server.rooms[code].phase == Phase.RESULTS

    def test_leave_unbinds_connection(self, game_server):
        code, conns = self.join_three(game_server)
        ack = request(game_server, conns[0], MessageType.LEAVE, roomCode=code, playerKey="p0")
        assert ack["payload"]["ok"]
        assert conns[0] not in game_server.ws_to_player
        room = game_server.rooms[code]
        assert room.host_key == "p1"
        assert conns[1].of_type(MessageType.ANNOUNCE)


class TestConnectionLifecycle:
    def test_close_marks_disconnected(self, game_server):
        host = FakeConnection()
        code = create_room(game_server, host)
        guest = FakeConnection([create_message(MessageType.JOIN_OR_CREATE, {
            "roomCode": code, "playerKey": "p1", "name": "Guest",
        })])
        asyncio.run(game_server.handle_connection(guest))
        room = game_server.rooms[code]
        assert guest.of_type(MessageType.ACK)[0]["ok"] is True
        assert room.players["p1"].connected is False
        assert guest not in game_server.ws_to_player

    def test_sole_player_close_queues_reclaim(self, game_server):
        host_ws = FakeConnection([create_message(MessageType.JOIN_OR_CREATE, {
            "create": True, "playerKey": "p0", "name": "Host",
        })])
        asyncio.run(game_server.handle_connection(host_ws))
        code = host_ws.of_type(MessageType.ACK)[0]["roomCode"]
        room = game_server.rooms[code]
        assert room.players["p0"].connected is False
        # Sole player: host stays put but the room is queued for reclamation
        assert room.host_key == "p0"
        assert room.reclaim_handle is not None

    def test_stale_close_after_rejoin(self, game_server):
        host = FakeConnection()
        code = create_room(game_server, host)
        join = create_message(MessageType.JOIN_OR_CREATE, {
            "roomCode": code, "playerKey": "p1", "name": "Guest",
        })
        old = FakeConnection([join])
        new = FakeConnection()
        game_server._handle_message(old, join)
        game_server._handle_message(new, join)
        old.incoming = []
        asyncio.run(game_server.handle_connection(old))
        player = game_server.rooms[code].players["p1"]
        assert player.connected is True
        assert player.connection is new

    def test_superseded_socket_cannot_leave(self, game_server):
        host = FakeConnection()
        code = create_room(game_server, host)
        old, new = FakeConnection(), FakeConnection()
        request(game_server, old, MessageType.JOIN_OR_CREATE, roomCode=code, playerKey="p1", name="Guest")
        request(game_server, new, MessageType.JOIN_OR_CREATE, roomCode=code, playerKey="p1", name="Guest")
        assert old not in game_server.ws_to_player
        ack = request(game_server, old, MessageType.LEAVE, roomCode=code, playerKey="p1")
        assert ack["payload"]["error"] == "UnknownPlayer"
        player = game_server.rooms[code].players["p1"]
        assert player.connected is True
        assert player.connection is new

    def test_closed_socket_skipped_by_fanout(self, game_server):
        host = FakeConnection()
        code = create_room(game_server, host)
        guest = FakeConnection([create_message(MessageType.JOIN_OR_CREATE, {
            "roomCode": code, "playerKey": "p1", "name": "Guest",
        })])
        asyncio.run(game_server.handle_connection(guest))
        received = len(guest.sent)
        request(game_server, FakeConnection(), MessageType.JOIN_OR_CREATE,
                roomCode=code, playerKey="p2", name="Late")
        assert len(guest.sent) == received
        assert host.of_type(MessageType.ROOM_UPDATE)[-1]["players"][1]["connected"] is False
