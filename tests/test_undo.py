"""Tests for undo planning and execution."""

import pytest

from chess_session.errors import Busy
from chess_session.models import Color, Move, PlayMode
from chess_session.undo import UndoController


def _history(*tokens):
    return [Move.from_coordinate(token) for token in tokens]


class TestPopCount:
    def test_human_to_move_drops_two(self) -> None:
        controller = UndoController(PlayMode.HUMAN_VS_AI, Color.WHITE)
        assert controller.pop_count(Color.WHITE) == 2

    def test_ai_to_move_drops_one(self) -> None:
        controller = UndoController(PlayMode.HUMAN_VS_AI, Color.WHITE)
        assert controller.pop_count(Color.BLACK) == 1

    def test_human_as_black(self) -> None:
        controller = UndoController(PlayMode.HUMAN_VS_AI, Color.BLACK)
        assert controller.pop_count(Color.BLACK) == 2
        assert controller.pop_count(Color.WHITE) == 1

    def test_human_vs_human_drops_one(self) -> None:
        controller = UndoController(PlayMode.HUMAN_VS_HUMAN)
        assert controller.pop_count(Color.WHITE) == 1
        assert controller.pop_count(Color.BLACK) == 1
        assert controller.player_color is None


class TestPlan:
    def test_truncates_history(self) -> None:
        controller = UndoController()
        plan = controller.plan(_history('e2e4', 'e7e5', 'g1f3', 'b8c6'), Color.WHITE)
        assert plan.pop_count == 2
        assert [move.coordinate() for move in plan.moves] == ['e2e4', 'e7e5']
        assert not plan.restart

    def test_short_history_restarts(self) -> None:
        controller = UndoController()
        plan = controller.plan(_history('e2e4'), Color.WHITE)
        assert plan.restart
        assert plan.moves == []

    def test_caller_history_is_not_modified(self) -> None:
        history = _history('e2e4', 'e7e5')
        UndoController().plan(history, Color.WHITE)
        assert len(history) == 2


class TestUndo:
    def test_replays_truncated_history(self, authority) -> None:
        controller = UndoController()
        history = _history('e2e4', 'e7e5', 'g1f3', 'b8c6')
        result = controller.undo(history, Color.WHITE, authority)
        assert result.ok
        assert [move.coordinate() for move in result.state.move_history] == ['e2e4', 'e7e5']
        assert authority.created == [Color.WHITE]

    def test_human_vs_human_creates_game_without_ai(self, authority) -> None:
        controller = UndoController(PlayMode.HUMAN_VS_HUMAN)
        result = controller.undo(_history('e2e4', 'e7e5'), Color.WHITE, authority)
        assert result.state.ply_count == 1
        assert authority.created == [None]

    def test_busy_while_ai_thinking(self, authority) -> None:
        controller = UndoController()
        with controller.thinking():
            with pytest.raises(Busy):
                controller.undo(_history('e2e4', 'e7e5'), Color.WHITE, authority)
        assert authority.created == []
        assert not controller.ai_thinking

    def test_thinking_is_exclusive(self) -> None:
        controller = UndoController()
        with controller.thinking():
            with pytest.raises(Busy):
                with controller.thinking():
                    pass
            assert controller.ai_thinking
