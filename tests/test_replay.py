"""Tests for replaying a move history on a fresh remote game."""

import pytest

from chess_session.errors import AuthorityRejected, AuthorityUnreachable, ReplayFailed
from chess_session.models import Color, Move, MoveKind
from chess_session.replay import replay


def _history(*tokens):
    return [Move.from_coordinate(token) for token in tokens]


class TestReplaySuccess:
    def test_replays_every_move_on_new_game(self, authority) -> None:
        history = _history('e2e4', 'e7e5', 'g1f3')
        result = replay(history, authority, player_color=Color.WHITE)
        assert result.ok
        assert result.completed_count == 3
        assert result.total == 3
        assert result.game_id == 'game-1'
        assert [move.coordinate() for move in result.state.move_history] == [
            'e2e4', 'e7e5', 'g1f3',
        ]
        assert authority.created == [Color.WHITE]

    def test_empty_history_gives_fresh_game(self, authority) -> None:
        result = replay([], authority)
        assert result.ok
        assert result.completed_count == 0
        assert result.state.ply_count == 0

    def test_each_replay_uses_new_game(self, authority) -> None:
        history = _history('d2d4', 'd7d5')
        first = replay(history, authority)
        second = replay(history, authority)
        assert first.game_id != second.game_id
        assert first.state.move_history == second.state.move_history

    def test_castling_is_resubmitted_as_notation(self, authority) -> None:
        history = _history('e2e4', 'e7e5', 'g1f3', 'b8c6', 'f1c4', 'g8f6')
        history.append(Move('e1', 'g1', notation='O-O', kind=MoveKind.CASTLING))
        result = replay(history, authority)
        assert result.ok
        assert authority.requests[-1] == {'notation': 'O-O'}
        assert result.state.move_history[-1].kind is MoveKind.CASTLING

    def test_promotion_is_carried_through(self, authority) -> None:
        history = [Move('a7', 'a8', promotion='knight')]
        replay(history, authority)
        assert authority.requests == [{'from': 'a7', 'to': 'a8', 'promotion': 'knight'}]

    def test_resolver_rewrites_moves_before_submission(self, authority) -> None:
        seen = []

        def resolve(game_id, move):
            seen.append((game_id, move.coordinate()))
            if move.coordinate() == 'e1g1':
                return Move('e1', 'g1', notation='O-O', kind=MoveKind.CASTLING)
            return move

        history = _history('e2e4', 'e7e5', 'e1g1')
        result = replay(history, authority, resolve=resolve)
        assert result.ok
        assert seen == [('game-1', 'e2e4'), ('game-1', 'e7e5'), ('game-1', 'e1g1')]
        assert authority.requests[-1] == {'notation': 'O-O'}

    def test_observer_sees_each_accepted_move(self, authority) -> None:
        seen = []
        replay(_history('e2e4', 'e7e5'), authority,
               observer=lambda index, move, state: seen.append((index, move.coordinate(),
                                                                state.ply_count)))
        assert seen == [(0, 'e2e4', 1), (1, 'e7e5', 2)]


class TestReplayFailure:
    def test_stops_at_first_refusal(self, authority) -> None:
        authority.reject.add('g1f3')
        result = replay(_history('e2e4', 'e7e5', 'g1f3', 'b8c6'), authority)
        assert not result.ok
        assert result.completed_count == 2
        assert result.failed_at == 2
        assert isinstance(result.error, AuthorityRejected)
        assert result.state.ply_count == 2
        assert len(authority.games[result.game_id]['moves']) == 2
        assert len(authority.requests) == 3

    def test_raise_for_failure(self, authority) -> None:
        authority.reject.add('e7e5')
        result = replay(_history('e2e4', 'e7e5'), authority)
        with pytest.raises(ReplayFailed) as excinfo:
            result.raise_for_failure()
        assert excinfo.value.completed_count == 1
        assert excinfo.value.failed_at == 1
        assert excinfo.value.status_code == 422
        assert 'move 2' in str(excinfo.value)

    def test_create_failure_propagates(self, authority) -> None:
        authority.unreachable = True
        with pytest.raises(AuthorityUnreachable):
            replay(_history('e2e4'), authority)
