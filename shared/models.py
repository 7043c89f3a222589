"""Serializable data classes for requests and room state.

Used by both client and server for network communication. Every client
request is one of the closed set of variants in REQUEST_TYPES; the server
never dispatches on a raw payload dict.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional
from shared.constants import MessageType, Phase, Role, Winner, NAME_MAX_LEN


def normalize_room_code(code) -> str:
    return str(code or "").strip().upper()


def normalize_name(name) -> str:
    return str(name or "").strip()[:NAME_MAX_LEN]


def _player_key(d: dict) -> str:
    return str(d.get("playerKey") or "").strip()


def _required(d: dict, name: str) -> str:
    value = d.get(name)
    if value is None or not isinstance(value, str):
        raise ValueError(f"missing field: {name}")
    return value


# ── Requests (client -> server) ──────────────────────────────────────────────

@dataclass
class JoinOrCreate:
    room_code: str
    player_key: str
    name: str
    create: bool = False

    @staticmethod
    def from_dict(d: dict) -> JoinOrCreate:
        return JoinOrCreate(
            room_code=normalize_room_code(d.get("roomCode")),
            player_key=_player_key(d),
            name=normalize_name(d.get("name")),
            create=bool(d.get("create", False)),
        )


@dataclass
class Leave:
    room_code: str
    player_key: str

    @staticmethod
    def from_dict(d: dict) -> Leave:
        return Leave(normalize_room_code(d.get("roomCode")), _player_key(d))


@dataclass
class RequestRole:
    room_code: str
    player_key: str

    @staticmethod
    def from_dict(d: dict) -> RequestRole:
        return RequestRole(normalize_room_code(d.get("roomCode")), _player_key(d))


@dataclass
class StartGame:
    room_code: str
    player_key: str

    @staticmethod
    def from_dict(d: dict) -> StartGame:
        return StartGame(normalize_room_code(d.get("roomCode")), _player_key(d))


@dataclass
class SetPhase:
    room_code: str
    player_key: str
    phase: str

    @staticmethod
    def from_dict(d: dict) -> SetPhase:
        return SetPhase(
            room_code=normalize_room_code(d.get("roomCode")),
            player_key=_player_key(d),
            phase=_required(d, "phase").strip().lower(),
        )


@dataclass
class NextSpeaker:
    room_code: str
    player_key: str

    @staticmethod
    def from_dict(d: dict) -> NextSpeaker:
        return NextSpeaker(normalize_room_code(d.get("roomCode")), _player_key(d))


@dataclass
class CastVote:
    room_code: str
    player_key: str
    target_key: str

    @staticmethod
    def from_dict(d: dict) -> CastVote:
        return CastVote(
            room_code=normalize_room_code(d.get("roomCode")),
            player_key=_player_key(d),
            target_key=_required(d, "targetKey").strip(),
        )


@dataclass
class NextRound:
    room_code: str
    player_key: str

    @staticmethod
    def from_dict(d: dict) -> NextRound:
        return NextRound(normalize_room_code(d.get("roomCode")), _player_key(d))


@dataclass
class EndGame:
    room_code: str
    player_key: str

    @staticmethod
    def from_dict(d: dict) -> EndGame:
        return EndGame(normalize_room_code(d.get("roomCode")), _player_key(d))


REQUEST_TYPES = {
    MessageType.JOIN_OR_CREATE: JoinOrCreate,
    MessageType.LEAVE: Leave,
    MessageType.REQUEST_ROLE: RequestRole,
    MessageType.START_GAME: StartGame,
    MessageType.SET_PHASE: SetPhase,
    MessageType.NEXT_SPEAKER: NextSpeaker,
    MessageType.CAST_VOTE: CastVote,
    MessageType.NEXT_ROUND: NextRound,
    MessageType.END_GAME: EndGame,
}


def parse_request(msg_type: MessageType, payload: dict):
    """Build the request variant for a client message.

    Raises ValueError for server->client types or missing required fields.
    """
    cls = REQUEST_TYPES.get(msg_type)
    if cls is None:
        raise ValueError(f"not a client request: {msg_type.value}")
    return cls.from_dict(payload)


# ── Outbound state (server -> client) ───────────────────────────────────────

@dataclass
class PlayerState:
    key: str
    name: str
    connected: bool = True
    eliminated: bool = False

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "name": self.name,
            "connected": self.connected,
            "eliminated": self.eliminated,
        }

    @staticmethod
    def from_dict(d: dict) -> PlayerState:
        return PlayerState(
            key=d["key"],
            name=d["name"],
            connected=d.get("connected", True),
            eliminated=d.get("eliminated", False),
        )


@dataclass
class OrderEntry:
    key: str
    name: str
    connected: bool = True
    eliminated: bool = False
    speaking: bool = False

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "name": self.name,
            "connected": self.connected,
            "eliminated": self.eliminated,
            "speaking": self.speaking,
        }

    @staticmethod
    def from_dict(d: dict) -> OrderEntry:
        return OrderEntry(
            key=d["key"],
            name=d["name"],
            connected=d.get("connected", True),
            eliminated=d.get("eliminated", False),
            speaking=d.get("speaking", False),
        )


@dataclass
class VoteStatus:
    voted_count: int
    total: int

    def to_dict(self) -> dict:
        return {"votedCount": self.voted_count, "total": self.total}

    @staticmethod
    def from_dict(d: dict) -> VoteStatus:
        return VoteStatus(voted_count=d["votedCount"], total=d["total"])


@dataclass
class TimerState:
    remaining_ms: int
    duration_ms: int

    def to_dict(self) -> dict:
        return {"remainingMs": self.remaining_ms, "durationMs": self.duration_ms}

    @staticmethod
    def from_dict(d: dict) -> TimerState:
        return TimerState(remaining_ms=d["remainingMs"], duration_ms=d["durationMs"])


@dataclass
class RoomSnapshot:
    """Public view of a room. Never carries the word or the imposter roster."""
    room_code: str
    phase: Phase
    round: int
    host_key: str
    players: list[PlayerState] = field(default_factory=list)
    order: list[OrderEntry] = field(default_factory=list)
    current_speaker_key: Optional[str] = None
    vote_status: Optional[VoteStatus] = None
    timer: Optional[TimerState] = None

    def to_dict(self) -> dict:
        return {
            "roomCode": self.room_code,
            "phase": self.phase.value,
            "round": self.round,
            "hostKey": self.host_key,
            "players": [p.to_dict() for p in self.players],
            "order": [o.to_dict() for o in self.order],
            "currentSpeakerKey": self.current_speaker_key,
            "voteStatus": self.vote_status.to_dict() if self.vote_status else None,
            "timer": self.timer.to_dict() if self.timer else None,
        }

    @staticmethod
    def from_dict(d: dict) -> RoomSnapshot:
        return RoomSnapshot(
            room_code=d["roomCode"],
            phase=Phase(d["phase"]),
            round=d["round"],
            host_key=d["hostKey"],
            players=[PlayerState.from_dict(p) for p in d.get("players", [])],
            order=[OrderEntry.from_dict(o) for o in d.get("order", [])],
            current_speaker_key=d.get("currentSpeakerKey"),
            vote_status=VoteStatus.from_dict(d["voteStatus"]) if d.get("voteStatus") else None,
            timer=TimerState.from_dict(d["timer"]) if d.get("timer") else None,
        )


@dataclass
class RolePayload:
    """Private role delivery. Imposters get no word and no teammates."""
    room_code: str
    role: Role
    word: Optional[str]
    round: int

    def to_dict(self) -> dict:
        return {
            "roomCode": self.room_code,
            "role": self.role.value,
            "word": self.word,
            "round": self.round,
        }


@dataclass
class EliminatedInfo:
    key: str
    name: str
    was_imposter: bool

    def to_dict(self) -> dict:
        return {"key": self.key, "name": self.name, "wasImposter": self.was_imposter}


@dataclass
class RoundResult:
    eliminated: Optional[EliminatedInfo]
    winner: Optional[Winner] = None

    @property
    def tie_or_no_elim(self) -> bool:
        return self.eliminated is None

    def to_dict(self) -> dict:
        return {
            "eliminated": self.eliminated.to_dict() if self.eliminated else None,
            "tieOrNoElim": self.tie_or_no_elim,
            "win": {"winner": self.winner.value} if self.winner else None,
        }


@dataclass
class WinReveal:
    winner: Winner
    imposters: list[PlayerState] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "winner": self.winner.value,
            "imposters": [{"key": p.key, "name": p.name} for p in self.imposters],
        }
