"""Game constants shared between client and server."""

from enum import Enum

# Rooms
ROOM_CODE_LENGTH = 4
# No I, O, 0 or 1 so codes read back unambiguously
ROOM_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"

# Players
MIN_PLAYERS = 3
NAME_MAX_LEN = 20

# Secret words
WORDS = [
    "Pizza", "Basketball", "School", "Netflix", "Soccer",
    "Seattle", "Airplane", "Coffee", "Concert", "Robots",
]

# Vote target meaning "no elimination from me"
SKIP = "SKIP"

# Phase timers (milliseconds)
ROLE_DURATION_MS = 12_000
DISCUSS_DURATION_MS = 60_000
VOTE_DURATION_MS = 30_000
RESULTS_DURATION_MS = 10_000

# Seconds a room may sit with nobody connected before it is discarded
EMPTY_ROOM_TTL = 600

# Server
DEFAULT_HOST = "localhost"
DEFAULT_PORT = 8765


class Phase(str, Enum):
    LOBBY = "lobby"
    ROLE = "role"
    DISCUSS = "discuss"
    VOTE = "vote"
    RESULTS = "results"


DEFAULT_PHASE_DURATIONS_MS = {
    Phase.ROLE: ROLE_DURATION_MS,
    Phase.DISCUSS: DISCUSS_DURATION_MS,
    Phase.VOTE: VOTE_DURATION_MS,
    Phase.RESULTS: RESULTS_DURATION_MS,
}

# Phases the host may jump to with phase:set
SETTABLE_PHASES = (Phase.DISCUSS, Phase.VOTE, Phase.RESULTS)


class Role(str, Enum):
    CREW = "CREW"
    IMPOSTER = "IMPOSTER"


class Winner(str, Enum):
    CREW = "CREW"
    IMPOSTERS = "IMPOSTERS"


class ErrorCode(str, Enum):
    BAD_REQUEST = "BadRequest"
    ROOM_NOT_FOUND = "RoomNotFound"
    NAME_REQUIRED = "NameRequired"
    IDENTITY_REQUIRED = "IdentityRequired"
    GAME_ALREADY_STARTED = "GameAlreadyStarted"
    NOT_HOST = "NotHost"
    TOO_FEW_PLAYERS = "TooFewPlayers"
    WRONG_PHASE = "WrongPhase"
    INVALID_PHASE = "InvalidPhase"
    UNKNOWN_PLAYER = "UnknownPlayer"
    ALREADY_ELIMINATED = "AlreadyEliminated"
    INVALID_TARGET = "InvalidTarget"
    SELF_VOTE = "SelfVote"
    GAME_OVER = "GameOver"
    SERVER_ERROR = "ServerError"


ERROR_MESSAGES = {
    ErrorCode.BAD_REQUEST: "Malformed request.",
    ErrorCode.ROOM_NOT_FOUND: "Room not found.",
    ErrorCode.NAME_REQUIRED: "Name required.",
    ErrorCode.IDENTITY_REQUIRED: "A valid playerKey is required.",
    ErrorCode.GAME_ALREADY_STARTED: "Game already started.",
    ErrorCode.NOT_HOST: "Only the host can do that.",
    ErrorCode.TOO_FEW_PLAYERS: f"Need at least {MIN_PLAYERS} players.",
    ErrorCode.WRONG_PHASE: "Not allowed in the current phase.",
    ErrorCode.INVALID_PHASE: "Unknown or disallowed phase.",
    ErrorCode.UNKNOWN_PLAYER: "Unknown player.",
    ErrorCode.ALREADY_ELIMINATED: "You are eliminated.",
    ErrorCode.INVALID_TARGET: "Invalid target.",
    ErrorCode.SELF_VOTE: "Can't vote for yourself.",
    ErrorCode.GAME_OVER: "Game is over. End the game to return to the lobby.",
    ErrorCode.SERVER_ERROR: "Server error processing action.",
}


class MessageType(str, Enum):
    # Client -> Server
    JOIN_OR_CREATE = "room:joinOrCreate"
    LEAVE = "room:leave"
    REQUEST_ROLE = "role:request"
    START_GAME = "game:start"
    SET_PHASE = "phase:set"
    NEXT_SPEAKER = "speaker:next"
    CAST_VOTE = "vote:cast"
    NEXT_ROUND = "round:next"
    END_GAME = "game:end"
    # Server -> Client
    ROOM_UPDATE = "room:update"
    ROLE = "game:role"
    ANNOUNCE = "game:announce"
    VOTE_STATUS = "vote:status"
    RESULTS = "game:results"
    WIN = "game:win"
    ACK = "ack"
    ERROR = "error"
