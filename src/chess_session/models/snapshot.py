"""Persisted session snapshots."""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional
import time

from ..errors import CorruptSnapshot, ValidationError
from .enums import Color, GameStatus
from .move import Move

SNAPSHOT_VERSION = 1


def now_ms() -> int:
    return int(time.time() * 1000)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass(frozen=True)
class Snapshot:
    """Self-sufficient record of a session.

    ``move_history`` is the only field used to reconstruct a game.
    ``game_id`` and ``fen`` are cache hints: the authority may have forgotten
    the id, so loading always goes through a replay.
    """

    move_history: List[Move] = field(default_factory=list)
    game_id: Any = None
    status: GameStatus = GameStatus.ACTIVE
    active_color: Color = Color.WHITE
    white_time_seconds: float = 0
    black_time_seconds: float = 0
    orientation: Color = Color.WHITE
    fen: Optional[str] = None
    saved_at: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.move_history

    def stamped(self, saved_at: int) -> 'Snapshot':
        return replace(self, saved_at=saved_at)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'version': SNAPSHOT_VERSION,
            'game_id': self.game_id,
            'move_history': [move.to_dict() for move in self.move_history],
            'status': self.status.value,
            'active_color': self.active_color.value,
            'white_time_seconds': self.white_time_seconds,
            'black_time_seconds': self.black_time_seconds,
            'orientation': self.orientation.value,
            'fen': self.fen,
            'saved_at': self.saved_at,
        }

    @classmethod
    def from_dict(cls, data: Any) -> 'Snapshot':
        """
        Validate and decode a stored snapshot.

        Missing optional fields fall back to the defaults above. A version
        mismatch or any field of the wrong type rejects the whole record.

        Raises:
            CorruptSnapshot: if the record fails validation
        """
        if not isinstance(data, dict):
            raise CorruptSnapshot('Snapshot must be an object')
        if data.get('version') != SNAPSHOT_VERSION:
            raise CorruptSnapshot(f"Unsupported snapshot version: {data.get('version')!r}")

        history = data.get('move_history', [])
        if not isinstance(history, list):
            raise CorruptSnapshot('move_history must be a list')
        try:
            moves = [Move.from_dict(item) for item in history]
        except ValidationError as exc:
            raise CorruptSnapshot(f'Invalid move in history: {exc}') from exc

        game_id = data.get('game_id')
        if game_id is not None and not isinstance(game_id, (str, int)):
            raise CorruptSnapshot('game_id must be a string or integer')

        status = data.get('status', GameStatus.ACTIVE.value)
        if not isinstance(status, str):
            raise CorruptSnapshot('status must be a string')

        colors = {}
        for key in ('active_color', 'orientation'):
            raw = data.get(key, Color.WHITE.value)
            color = Color.parse(raw) if isinstance(raw, str) else None
            if color is None:
                raise CorruptSnapshot(f'{key} must be white or black')
            colors[key] = color

        times = {}
        for key in ('white_time_seconds', 'black_time_seconds'):
            raw = data.get(key, 0)
            if not _is_number(raw) or raw < 0:
                raise CorruptSnapshot(f'{key} must be a non-negative number')
            times[key] = raw

        fen = data.get('fen')
        if fen is not None and not isinstance(fen, str):
            raise CorruptSnapshot('fen must be a string')

        saved_at = data.get('saved_at', 0)
        if not _is_number(saved_at):
            raise CorruptSnapshot('saved_at must be a number')

        return cls(
            move_history=moves,
            game_id=game_id,
            status=GameStatus.normalize(status),
            active_color=colors['active_color'],
            white_time_seconds=times['white_time_seconds'],
            black_time_seconds=times['black_time_seconds'],
            orientation=colors['orientation'],
            fen=fen or None,
            saved_at=int(saved_at),
        )
