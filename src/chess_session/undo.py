"""Undo by truncating the history and replaying it on a new game."""

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence

from .errors import Busy
from .models import Color, Move, PlayMode
from .replay import MoveResolver, ReplayObserver, ReplayResult, replay


@dataclass(frozen=True)
class UndoPlan:
    pop_count: int
    moves: List[Move]
    restart: bool = False


class UndoController:
    """Decides how many plies an undo discards.

    Against the AI, undoing on the human's turn drops the AI reply and the
    human move before it; undoing while the AI is to move drops only the
    human move. Human-vs-human always drops one ply.
    """

    def __init__(self, mode: PlayMode = PlayMode.HUMAN_VS_AI,
                 human_color: Color = Color.WHITE):
        self.mode = PlayMode(mode)
        self.human_color = Color(human_color)
        self.ai_thinking = False

    @property
    def player_color(self) -> Optional[Color]:
        """Color passed to ``create_game``; ``None`` when no AI takes part."""
        if self.mode is PlayMode.HUMAN_VS_HUMAN:
            return None
        return self.human_color

    @contextmanager
    def thinking(self) -> Iterator[None]:
        """Hold the AI-thinking lock for the duration of an AI request."""
        if self.ai_thinking:
            raise Busy('AI move already in progress')
        self.ai_thinking = True
        try:
            yield
        finally:
            self.ai_thinking = False

    def pop_count(self, active_color: Color) -> int:
        if self.mode is PlayMode.HUMAN_VS_HUMAN:
            return 1
        if Color(active_color) is self.human_color:
            return 2
        return 1

    def plan(self, history: Sequence[Move], active_color: Color) -> UndoPlan:
        count = self.pop_count(active_color)
        if len(history) < count:
            return UndoPlan(pop_count=len(history), moves=[], restart=True)
        return UndoPlan(pop_count=count, moves=list(history[:len(history) - count]))

    def undo(self, history: Sequence[Move], active_color: Color, authority,
             observer: Optional[ReplayObserver] = None,
             resolve: Optional[MoveResolver] = None) -> ReplayResult:
        """
        Replay the truncated history on a fresh game.

        The caller's history is never modified; it adopts the result only when
        ``result.ok`` is true.

        Raises:
            Busy: if an AI move is in flight
        """
        if self.ai_thinking:
            raise Busy('Cannot undo while the AI is thinking')
        plan = self.plan(history, active_color)
        return replay(plan.moves, authority, observer=observer,
                      player_color=self.player_color, resolve=resolve)
