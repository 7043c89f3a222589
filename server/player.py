"""Player model: stable key, display name, live connection."""

from typing import Any, Optional
from shared.models import PlayerState


class Player:
    """Server-side player. Never deleted from a room, only disconnected."""

    def __init__(self, key: str, name: str, connection: Any = None):
        self.key = key
        self.name = name
        self.connection: Optional[Any] = connection
        self.connected: bool = connection is not None

    def attach(self, connection: Any, name: Optional[str] = None):
        if name:
            self.name = name
        self.connection = connection
        self.connected = True

    def detach(self):
        self.connection = None
        self.connected = False

    def to_state(self, eliminated: bool = False) -> PlayerState:
        return PlayerState(
            key=self.key,
            name=self.name,
            connected=self.connected,
            eliminated=eliminated,
        )
