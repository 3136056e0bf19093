"""Rebuild a game position on a fresh remote game."""

from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence
import logging

from .errors import AuthorityError, NotFound, ReplayFailed
from .models import Color, GameState, Move

logger = logging.getLogger(__name__)

ReplayObserver = Callable[[int, Move, GameState], None]
MoveResolver = Callable[[Any, Move], Move]


@dataclass
class ReplayResult:
    """Outcome of a replay run.

    ``state`` is the remote state after the last accepted move (or the fresh
    game when nothing was accepted). ``failed_at`` is the index of the move
    the authority refused, ``None`` when every move went through.
    """

    completed_count: int
    total: int
    state: GameState
    failed_at: Optional[int] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.failed_at is None

    @property
    def game_id(self) -> Any:
        return self.state.id

    def raise_for_failure(self) -> None:
        if not self.ok:
            raise ReplayFailed(self.completed_count, self.failed_at, self.error)


def replay(moves: Sequence[Move], authority, observer: Optional[ReplayObserver] = None,
           player_color: Optional[Color] = None, refresh: bool = True,
           resolve: Optional[MoveResolver] = None) -> ReplayResult:
    """
    Create a new remote game and resubmit ``moves`` one at a time.

    Each move is only sent once the previous one has been accepted. The first
    refusal stops the run; it is never retried.

    Args:
        moves: Moves to resubmit, in ply order
        authority: Client exposing ``create_game``, ``submit_move`` and ``get_game``
        observer: Called with ``(index, move, state)`` after each accepted move
        player_color: Color of the human player, forwarded to ``create_game``
        refresh: Fetch the game after each move instead of trusting the move response
        resolve: Called with ``(game_id, move)`` before each submission and returns
            the move to send, e.g. a coordinate castling move rewritten as ``O-O``

    Returns:
        ReplayResult describing how far the reconstruction got

    Raises:
        AuthorityError, NotFound: if the fresh game cannot be created
    """
    moves: List[Move] = list(moves)
    state = authority.create_game(player_color)
    game_id = state.id
    logger.debug('Replaying %d moves on game %s', len(moves), game_id)

    for index, move in enumerate(moves):
        try:
            if resolve is not None:
                move = resolve(game_id, move)
            state = authority.submit_move(game_id, move)
            if refresh:
                state = authority.get_game(game_id)
        except (AuthorityError, NotFound) as exc:
            logger.warning('Replay stopped at move %d (%s) on game %s: %s',
                           index + 1, move.coordinate(), game_id, exc)
            return ReplayResult(
                completed_count=index,
                total=len(moves),
                state=state,
                failed_at=index,
                error=exc,
            )
        logger.debug('Replayed move %d: %s', index + 1, move.coordinate())
        if observer is not None:
            observer(index, move, state)

    return ReplayResult(completed_count=len(moves), total=len(moves), state=state)
