"""Remote game state as reported by the move authority."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..errors import AuthorityUnreachable, ValidationError
from .enums import Color, GameStatus
from .move import Move


@dataclass
class GameState:
    """Normalized view of an authority game payload.

    Status strings are translated to :class:`GameStatus` here so that the
    rest of the session layer never sees the authority's spelling.
    """

    id: Any
    fen: str = ''
    move_history: List[Move] = field(default_factory=list)
    active_color: Color = Color.WHITE
    status: GameStatus = GameStatus.ACTIVE
    ai_color: Optional[Color] = None

    @property
    def ply_count(self) -> int:
        return len(self.move_history)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert game state to dictionary for JSON serialization.

        Returns:
            Dictionary representation of game state
        """
        return {
            'id': self.id,
            'fen': self.fen,
            'move_history': [move.to_dict() for move in self.move_history],
            'active_color': self.active_color.value,
            'status': self.status.value,
            'ai_color': self.ai_color.value if self.ai_color else None,
        }

    @classmethod
    def from_payload(cls, data: Any) -> 'GameState':
        """
        Create a game state from an authority response.

        Args:
            data: Decoded JSON body returned by the authority

        Returns:
            GameState instance

        Raises:
            AuthorityUnreachable: if the payload does not look like a game
        """
        if not isinstance(data, dict):
            raise AuthorityUnreachable('Malformed game payload')
        game_id = data.get('id', data.get('game_id'))
        if game_id is None or game_id == '':
            raise AuthorityUnreachable('Game payload has no id')

        raw_history = data.get('move_history') or []
        if not isinstance(raw_history, list):
            raise AuthorityUnreachable('Game payload has malformed move history')
        try:
            history = [Move.from_dict(item) for item in raw_history]
        except ValidationError as exc:
            raise AuthorityUnreachable(f'Game payload has malformed move: {exc}') from exc

        fen = data.get('fen') or data.get('board') or ''
        return cls(
            id=game_id,
            fen=fen if isinstance(fen, str) else '',
            move_history=history,
            active_color=Color.parse(data.get('active_color'), Color.WHITE),
            status=GameStatus.normalize(data.get('status')),
            ai_color=Color.parse(data.get('ai_color')),
        )
