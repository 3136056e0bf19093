"""Enumerations shared by the session models."""

from enum import Enum
from typing import Optional


class Color(str, Enum):
    WHITE = 'white'
    BLACK = 'black'

    @property
    def opponent(self) -> 'Color':
        return Color.BLACK if self is Color.WHITE else Color.WHITE

    @classmethod
    def parse(cls, value, default: Optional['Color'] = None) -> Optional['Color']:
        """Return the color for ``value`` or ``default`` when unrecognized."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in ('w', 'white'):
                return cls.WHITE
            if lowered in ('b', 'black'):
                return cls.BLACK
        return default


class GameStatus(str, Enum):
    """Canonical game status used everywhere inside the session layer."""

    ACTIVE = 'active'
    CHECK = 'check'
    WHITE_WINS = 'white_wins'
    BLACK_WINS = 'black_wins'
    CHECKMATE = 'checkmate'
    DRAW = 'draw'
    STALEMATE = 'stalemate'
    UNKNOWN = 'unknown'

    @property
    def is_over(self) -> bool:
        return self in _FINISHED_STATUSES

    @classmethod
    def normalize(cls, value) -> 'GameStatus':
        """Translate the authority's status strings into the canonical enum."""
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.ACTIVE
        if not isinstance(value, str):
            return cls.UNKNOWN
        key = value.strip().lower().replace('-', '_').replace(' ', '_')
        return _STATUS_ALIASES.get(key, cls.UNKNOWN)


_FINISHED_STATUSES = frozenset({
    GameStatus.WHITE_WINS,
    GameStatus.BLACK_WINS,
    GameStatus.CHECKMATE,
    GameStatus.DRAW,
    GameStatus.STALEMATE,
})

_STATUS_ALIASES = {
    '': GameStatus.ACTIVE,
    'active': GameStatus.ACTIVE,
    'in_progress': GameStatus.ACTIVE,
    'inprogress': GameStatus.ACTIVE,
    'ongoing': GameStatus.ACTIVE,
    'playing': GameStatus.ACTIVE,
    'check': GameStatus.CHECK,
    'white_wins': GameStatus.WHITE_WINS,
    'white_won': GameStatus.WHITE_WINS,
    'black_wins': GameStatus.BLACK_WINS,
    'black_won': GameStatus.BLACK_WINS,
    'checkmate': GameStatus.CHECKMATE,
    'draw': GameStatus.DRAW,
    'stalemate': GameStatus.STALEMATE,
    'unknown': GameStatus.UNKNOWN,
}


class MoveKind(str, Enum):
    NORMAL = 'normal'
    CASTLING = 'castling'
    EN_PASSANT = 'en_passant'
    PROMOTION = 'promotion'

    @classmethod
    def parse(cls, value) -> Optional['MoveKind']:
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


class PlayMode(str, Enum):
    HUMAN_VS_HUMAN = 'human_vs_human'
    HUMAN_VS_AI = 'human_vs_ai'
