"""Room aggregate: roster, host, and the state of the current game."""

from typing import Any, Optional
from shared.constants import Phase
from shared.models import RoomSnapshot, OrderEntry, VoteStatus
from server.player import Player
from server.timers import PhaseTimer


class Room:
    """Authoritative state for one room.

    The roster survives across games; everything else between `phase` and
    `revealed_keys` belongs to the game in progress and is cleared by
    reset_game().
    """

    def __init__(self, code: str, timer: PhaseTimer):
        self.code = code
        self.host_key: str = ""
        self.players: dict[str, Player] = {}  # key -> player, in join order
        self.timer = timer
        # Handle for discarding the room once nobody is connected
        self.reclaim_handle: Optional[Any] = None
        self.reset_game()

    def reset_game(self):
        self.timer.cancel()
        self.phase: Phase = Phase.LOBBY
        self.round: int = 0
        self.secret_word: Optional[str] = None
        self.imposter_keys: set[str] = set()
        self.eliminated_keys: set[str] = set()
        self.speaking_order: list[str] = []
        self.current_speaker_index: int = 0
        self.current_speaker_key: Optional[str] = None
        self.votes: dict[str, str] = {}  # voter key -> target key or SKIP
        self.revealed_keys: set[str] = set()
        # Set once the end-of-game roster has been published
        self.win_revealed: bool = False

    # ── roster ──

    def add_player(self, player: Player):
        self.players[player.key] = player
        if not self.host_key:
            self.host_key = player.key

    def is_host(self, key: str) -> bool:
        return key == self.host_key

    def connected_players(self) -> list[Player]:
        return [p for p in self.players.values() if p.connected]

    def promote_host(self) -> bool:
        """Hand host to the first connected player, else the first player.

        Returns True if the host changed.
        """
        candidates = self.connected_players() or list(self.players.values())
        if not candidates:
            return False
        new_host = candidates[0].key
        if new_host == self.host_key:
            return False
        self.host_key = new_host
        return True

    # ── game ──

    @property
    def in_game(self) -> bool:
        return self.phase != Phase.LOBBY

    def is_living(self, key: str) -> bool:
        return key in self.players and key not in self.eliminated_keys

    def living_keys(self) -> list[str]:
        return [k for k in self.players if k not in self.eliminated_keys]

    def vote_status(self) -> VoteStatus:
        living = self.living_keys()
        voted = sum(1 for k in living if k in self.votes)
        return VoteStatus(voted_count=voted, total=len(living))

    def get_snapshot(self) -> RoomSnapshot:
        speaking = self.current_speaker_key if self.phase == Phase.DISCUSS else None
        order = []
        for key in self.speaking_order:
            player = self.players[key]
            order.append(OrderEntry(
                key=key,
                name=player.name,
                connected=player.connected,
                eliminated=key in self.eliminated_keys,
                speaking=key == speaking,
            ))
        return RoomSnapshot(
            room_code=self.code,
            phase=self.phase,
            round=self.round,
            host_key=self.host_key,
            players=[p.to_state(p.key in self.eliminated_keys) for p in self.players.values()],
            order=order,
            current_speaker_key=self.current_speaker_key,
            vote_status=self.vote_status() if self.phase == Phase.VOTE else None,
            timer=self.timer.to_state(),
        )
