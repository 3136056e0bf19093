"""Per-session orchestration of moves, undo, save slots and transcripts."""

from contextlib import contextmanager
from dataclasses import replace
from typing import Any, Callable, Dict, Iterator, List, Optional
import logging
import threading

from . import transcript
from .errors import Busy, ChessSessionError, NotFound, StorageError, ValidationError
from .models import Color, GameState, Move, MoveKind, PlayMode, Snapshot
from .replay import ReplayObserver, ReplayResult, replay
from .storage import SnapshotStore
from .undo import UndoController

logger = logging.getLogger(__name__)


class GameSession:
    """Owns one player's working copy of a game.

    The remote game id is only a handle for the current run: every
    reconstruction (undo, load, import, autosave restore) replays the move
    history on a brand-new remote game. Multi-step operations share one
    non-blocking lock, so a second request made while one is running gets
    :class:`Busy` instead of interleaving with it.
    """

    def __init__(self, authority, store: SnapshotStore,
                 mode: PlayMode = PlayMode.HUMAN_VS_AI,
                 human_color: Color = Color.WHITE,
                 player_name: str = 'Player',
                 enable_undo: bool = True,
                 ai_level: str = 'medium',
                 ai_engine: str = 'minimax',
                 observer: Optional[ReplayObserver] = None):
        self.authority = authority
        self.store = store
        self.undo_controller = UndoController(mode, human_color)
        self.player_name = player_name or 'Player'
        self.enable_undo = enable_undo
        self.ai_level = ai_level
        self.ai_engine = ai_engine
        self.observer = observer
        self.orientation = Color(human_color)
        self.white_time_seconds: float = 0
        self.black_time_seconds: float = 0
        self.transcript = ''
        self._game: Optional[GameState] = None
        self._lock = threading.Lock()
        self._disposed = False
        self._pending_color: Optional[Color] = None

    @classmethod
    def create(cls, authority, store: SnapshotStore, restore: bool = True,
               **options) -> 'GameSession':
        """Build a session, restoring the autosave or starting a new game."""
        session = cls(authority, store, **options)
        session.start(restore=restore)
        return session

    def start(self, restore: bool = True) -> Dict[str, Any]:
        """Restore the autosave once, falling back to a new game."""
        if restore:
            try:
                restored = self.restore_autosave()
            except Busy:
                raise
            except ChessSessionError as exc:
                logger.warning('Autosave restore failed, starting a new game: %s', exc)
            else:
                if restored is not None:
                    return restored
        return self.new_game()

    def dispose(self) -> None:
        """Drop the working copy; further operations raise ``NotFound``."""
        with self._lock:
            self._disposed = True
            self._game = None
            self.transcript = ''

    @property
    def mode(self) -> PlayMode:
        return self.undo_controller.mode

    @property
    def human_color(self) -> Color:
        return self.undo_controller.human_color

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    @property
    def game(self) -> Optional[GameState]:
        return self._game

    @property
    def history(self) -> List[Move]:
        return list(self._game.move_history) if self._game else []

    # -- internal helpers -------------------------------------------------

    @contextmanager
    def _operation(self) -> Iterator[None]:
        if self._disposed:
            raise NotFound('Session has been disposed')
        if not self._lock.acquire(blocking=False):
            raise Busy('Another operation is in progress')
        known_good = self._capture()
        try:
            yield
        except Exception:
            self._restore(known_good)
            raise
        finally:
            self._lock.release()

    def _capture(self) -> Dict[str, Any]:
        return {
            'game': self._game,
            'transcript': self.transcript,
            'white_time_seconds': self.white_time_seconds,
            'black_time_seconds': self.black_time_seconds,
            'orientation': self.orientation,
        }

    def _restore(self, view: Dict[str, Any]) -> None:
        self._game = view['game']
        self.transcript = view['transcript']
        self.white_time_seconds = view['white_time_seconds']
        self.black_time_seconds = view['black_time_seconds']
        self.orientation = view['orientation']

    def _require_game(self) -> GameState:
        if self._game is None:
            raise NotFound('No active game')
        return self._game

    def transcript_meta(self) -> Dict[str, str]:
        if self.mode is PlayMode.HUMAN_VS_HUMAN:
            return {'white': self.player_name, 'black': 'Player 2'}
        if self.human_color is Color.BLACK:
            return {'white': 'AI', 'black': self.player_name}
        return {'white': self.player_name, 'black': 'AI'}

    def _adopt(self, state: GameState) -> None:
        self._game = state
        self.transcript = transcript.build(
            state.move_history, self.transcript_meta(), state.status
        )
        try:
            self.store.autosave(self.snapshot())
        except StorageError as exc:
            logger.warning('Autosave failed: %s', exc)

    def _replay(self, moves: List[Move]) -> ReplayResult:
        result = replay(moves, self.authority, observer=self.observer,
                        player_color=self.undo_controller.player_color,
                        resolve=self._resolve_replayed_move)
        result.raise_for_failure()
        return result

    def _resolve_move(self, game_id, move: Move, require_promotion: bool = True) -> Move:
        """Fill in castling notation and check promotions using legal moves."""
        if move.kind is not None or move.notation:
            return move
        try:
            legal = self.authority.legal_moves(game_id)
        except ChessSessionError as exc:
            logger.warning('Could not get legal moves, sending move as is: %s', exc)
            return move
        matches = [
            candidate for candidate in legal
            if candidate.from_square == move.from_square
            and candidate.to_square == move.to_square
        ]
        for candidate in matches:
            if candidate.kind in (MoveKind.CASTLING, MoveKind.EN_PASSANT):
                return replace(move, kind=candidate.kind, notation=candidate.notation)
        promoting = any(
            candidate.kind is MoveKind.PROMOTION or candidate.promotion is not None
            for candidate in matches
        )
        if require_promotion and promoting and move.promotion is None:
            raise ValidationError('A promotion piece must be chosen for this move')
        return move

    def _resolve_replayed_move(self, game_id, move: Move) -> Move:
        return self._resolve_move(game_id, move, require_promotion=False)

    # -- operations --------------------------------------------------------

    def snapshot(self) -> Snapshot:
        game = self._require_game()
        return Snapshot(
            move_history=list(game.move_history),
            game_id=game.id,
            status=game.status,
            active_color=game.active_color,
            white_time_seconds=self.white_time_seconds,
            black_time_seconds=self.black_time_seconds,
            orientation=self.orientation,
            fen=game.fen or None,
        )

    def projection(self) -> Dict[str, Any]:
        """Read-only view handed to the UI after every operation."""
        game = self._game
        return {
            'game_id': game.id if game else None,
            'move_history': [move.to_dict() for move in game.move_history] if game else [],
            'status': game.status.value if game else None,
            'active_color': game.active_color.value if game else None,
            'fen': game.fen if game else None,
            'white_time_seconds': self.white_time_seconds,
            'black_time_seconds': self.black_time_seconds,
            'orientation': self.orientation.value,
            'mode': self.mode.value,
            'human_color': self.human_color.value,
            'transcript': self.transcript,
            'busy': self.busy,
            'ai_thinking': self.undo_controller.ai_thinking,
            'can_undo': bool(self.enable_undo and game and game.move_history),
        }

    def new_game(self) -> Dict[str, Any]:
        with self._operation():
            controller = self.undo_controller
            if self._pending_color is not None:
                controller = UndoController(self.mode, self._pending_color)
            state = self.authority.create_game(controller.player_color)
            self.undo_controller = controller
            self._pending_color = None
            self.white_time_seconds = 0
            self.black_time_seconds = 0
            self.orientation = self.human_color
            self._adopt(state)
            logger.info('Started game %s', state.id)
        return self.projection()

    def apply_move(self, move: Move) -> Dict[str, Any]:
        """Submit a move, then regenerate the transcript and autosave."""
        with self._operation():
            game = self._require_game()
            move = self._resolve_move(game.id, move)
            state = self.authority.submit_move(game.id, move)
            self._adopt(state)
        return self.projection()

    def request_ai_move(self) -> Dict[str, Any]:
        """Ask the authority for the AI reply while holding the AI lock."""
        if self.mode is not PlayMode.HUMAN_VS_AI:
            raise ValidationError('There is no AI player in this game')
        with self._operation(), self.undo_controller.thinking():
            game = self._require_game()
            self.authority.ai_move(game.id, self.ai_level, self.ai_engine)
            self._adopt(self.authority.get_game(game.id))
        return self.projection()

    def refresh(self) -> Dict[str, Any]:
        """Re-read the remote game; ``NotFound`` if the authority forgot it."""
        with self._operation():
            game = self._require_game()
            self._adopt(self.authority.get_game(game.id))
        return self.projection()

    def undo(self) -> Dict[str, Any]:
        """Discard trailing plies by replaying the rest on a new game.

        Raises:
            ReplayFailed: if the replay stops early; the previous view is kept
        """
        if not self.enable_undo:
            raise ValidationError('Undo is disabled')
        if self.undo_controller.ai_thinking:
            raise Busy('Cannot undo while the AI is thinking')
        with self._operation():
            game = self._require_game()
            result = self.undo_controller.undo(
                game.move_history, game.active_color, self.authority, observer=self.observer,
                resolve=self._resolve_replayed_move,
            )
            result.raise_for_failure()
            self._adopt(result.state)
            logger.info('Undo left %d plies on game %s', result.completed_count, result.game_id)
        return self.projection()

    def save(self, slot: int) -> Snapshot:
        return self.store.save(slot, self.snapshot())

    def load(self, slot: int) -> Dict[str, Any]:
        """Rebuild the session from a save slot by replaying its history."""
        with self._operation():
            snap = self.store.load(slot)
            self._load_snapshot(snap)
        return self.projection()

    def delete_slot(self, slot: int) -> None:
        self.store.delete(slot)

    def restore_autosave(self) -> Optional[Dict[str, Any]]:
        with self._operation():
            snap = self.store.try_restore_autosave()
            if snap is None:
                return None
            self._load_snapshot(snap)
        return self.projection()

    def _load_snapshot(self, snap: Snapshot) -> None:
        result = self._replay(snap.move_history)
        self.white_time_seconds = snap.white_time_seconds
        self.black_time_seconds = snap.black_time_seconds
        self.orientation = snap.orientation
        self._adopt(result.state)
        logger.info('Rebuilt %d plies on game %s', result.completed_count, result.game_id)

    def import_transcript(self, text: str) -> Dict[str, Any]:
        """Replay the coordinate moves found in ``text`` on a new game."""
        moves = transcript.parse_coordinate_moves(text)
        if not moves:
            raise ValidationError('No importable moves')
        with self._operation():
            result = self._replay(moves)
            self.white_time_seconds = 0
            self.black_time_seconds = 0
            self._adopt(result.state)
        return self.projection()

    def export_transcript(self, coordinate: bool = False) -> str:
        game = self._game
        if game is None:
            return ''
        build = transcript.build_coordinate if coordinate else transcript.build
        return build(game.move_history, self.transcript_meta(), game.status)

    def apply_preferences(self, preferences) -> None:
        """Adopt player preferences; a color change applies to the next game."""
        self.player_name = preferences.player_name
        self.enable_undo = preferences.enable_undo
        color = Color(preferences.player_color)
        self._pending_color = color if color is not self.human_color else None

    def set_clock(self, white_seconds: float, black_seconds: float) -> Dict[str, Any]:
        for value in (white_seconds, black_seconds):
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
                raise ValidationError('Clock values must be non-negative numbers')
        with self._operation():
            self.white_time_seconds = white_seconds
            self.black_time_seconds = black_seconds
            if self._game is not None:
                self._adopt(self._game)
        return self.projection()


SessionFactory = Callable[[str], GameSession]


class SessionRegistry:
    """Maps browser session ids to live :class:`GameSession` objects."""

    def __init__(self, factory: SessionFactory):
        self._factory = factory
        self._sessions: Dict[str, GameSession] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> GameSession:
        with self._lock:
            session = self._sessions.get(key)
            if session is None:
                session = self._factory(key)
                self._sessions[key] = session
            return session

    def discard(self, key: str) -> None:
        with self._lock:
            session = self._sessions.pop(key, None)
        if session is not None:
            session.dispose()

    def __len__(self) -> int:
        return len(self._sessions)

