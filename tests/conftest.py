"""Shared pytest fixtures used across the test suite."""

from typing import Callable, Dict, List, Optional

import pytest

from chess_session.app import create_app
from chess_session.config import Settings
from chess_session.errors import AuthorityRejected, AuthorityUnreachable, NotFound
from chess_session.models import Color, GameState, GameStatus, Move, MoveKind
from chess_session.session import GameSession
from chess_session.storage import MemoryBackend, SnapshotStore

_CASTLING_SQUARES = {
    (Color.WHITE, 'O-O'): ('e1', 'g1'),
    (Color.WHITE, 'O-O-O'): ('e1', 'c1'),
    (Color.BLACK, 'O-O'): ('e8', 'g8'),
    (Color.BLACK, 'O-O-O'): ('e8', 'c8'),
}


class FakeAuthority:
    """Deterministic stand-in for the move authority.

    It accepts any well-formed move except those listed in ``reject``
    (coordinate tokens or castling notations) and simply alternates the side
    to move. Every request is recorded so tests can inspect what was sent.
    """

    def __init__(self):
        self.games: Dict[str, dict] = {}
        self.created: List[Optional[Color]] = []
        self.requests: List[dict] = []
        self.reject: set = set()
        self.unreachable = False
        self.legal: List[Move] = []
        self.ai_replies: List[Move] = []
        self.on_ai_move: Optional[Callable[[], None]] = None
        self.status = GameStatus.ACTIVE
        self._counter = 0

    def _state(self, game_id) -> GameState:
        game = self.games[game_id]
        return GameState(
            id=game_id,
            fen=f"fen-after-{len(game['moves'])}",
            move_history=list(game['moves']),
            active_color=game['active_color'],
            status=self.status,
            ai_color=game['ai_color'],
        )

    def _check(self):
        if self.unreachable:
            raise AuthorityUnreachable('connection refused')

    def create_game(self, player_color: Optional[Color] = None) -> GameState:
        self._check()
        self._counter += 1
        game_id = f'game-{self._counter}'
        self.created.append(player_color)
        self.games[game_id] = {
            'moves': [],
            'active_color': Color.WHITE,
            'ai_color': Color(player_color).opponent if player_color else None,
        }
        return self._state(game_id)

    def get_game(self, game_id) -> GameState:
        self._check()
        if game_id not in self.games:
            raise NotFound(f'Game {game_id} not found')
        return self._state(game_id)

    def submit_move(self, game_id, move: Move) -> GameState:
        self._check()
        if game_id not in self.games:
            raise NotFound(f'Game {game_id} not found')
        game = self.games[game_id]
        request = move.to_request()
        self.requests.append(request)
        token = request.get('notation') or move.coordinate()
        if token in self.reject:
            raise AuthorityRejected(f'Illegal move {token}', status=400)
        if 'notation' in request:
            from_square, to_square = _CASTLING_SQUARES[(game['active_color'], request['notation'])]
            recorded = Move(from_square, to_square, notation=request['notation'],
                            kind=MoveKind.CASTLING)
        else:
            recorded = Move(move.from_square, move.to_square, promotion=move.promotion,
                            notation=move.notation, kind=move.kind)
        game['moves'].append(recorded)
        game['active_color'] = game['active_color'].opponent
        return self._state(game_id)

    def legal_moves(self, game_id) -> List[Move]:
        self._check()
        return list(self.legal)

    def ai_move(self, game_id, level: str = 'medium', engine: str = 'minimax') -> Move:
        if self.on_ai_move is not None:
            self.on_ai_move()
        move = self.ai_replies.pop(0) if self.ai_replies else Move('e7', 'e5')
        self.submit_move(game_id, move)
        return move

    def health(self) -> bool:
        return not self.unreachable


@pytest.fixture
def authority() -> FakeAuthority:
    return FakeAuthority()


@pytest.fixture
def backend() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture
def store(backend) -> SnapshotStore:
    return SnapshotStore(backend, namespace='test')


@pytest.fixture
def game_session(authority, store) -> GameSession:
    """A started human-vs-AI session with the human playing white."""
    return GameSession.create(authority, store)


@pytest.fixture
def app(tmp_path, authority, backend):
    settings = Settings(
        storage_backend='memory',
        session_file_dir=str(tmp_path / 'flask_session'),
        secret_key='test-secret',
    )
    flask_app = create_app(settings, authority=authority, backend=backend)
    flask_app.config['TESTING'] = True
    return flask_app


@pytest.fixture
def client(app):
    return app.test_client()
