"""Session data models."""

from .enums import Color, GameStatus, MoveKind, PlayMode
from .move import Move
from .game import GameState
from .snapshot import SNAPSHOT_VERSION, Snapshot

__all__ = [
    'Color', 'GameStatus', 'MoveKind', 'PlayMode', 'Move', 'GameState',
    'SNAPSHOT_VERSION', 'Snapshot',
]
