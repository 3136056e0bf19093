"""PGN-like transcript export and coordinate-move import.

The importer understands only coordinate moves (``e2e4``, ``e7e8q``). SAN
tokens such as ``Nf3`` or ``exd5+`` are skipped rather than guessed at, so a
transcript exported with SAN notation re-imports only its coordinate tokens.
Use :func:`build_coordinate` for an export that re-imports losslessly.
"""

from datetime import date
from typing import Dict, Iterable, List, Optional
import re

from .models import GameStatus, Move

_HEADER_RE = re.compile(r'^\[(\w+)\s+"((?:[^"\\]|\\.)*)"\]\s*$')
_MOVE_NUMBER_RE = re.compile(r'^\d+\.')
_RESULT_RE = re.compile(r'^(1-0|0-1|1/2-1/2|\*)$')

HEADER_ORDER = ('Event', 'Site', 'Date', 'Round', 'White', 'Black', 'Result')


def result_token(status) -> str:
    """Map a game status onto a PGN result token."""
    status = GameStatus.normalize(status)
    if status in (GameStatus.WHITE_WINS, GameStatus.CHECKMATE):
        return '1-0'
    if status is GameStatus.BLACK_WINS:
        return '0-1'
    if status in (GameStatus.DRAW, GameStatus.STALEMATE):
        return '1/2-1/2'
    return '*'


def default_headers(meta: Optional[Dict[str, str]] = None, status=None,
                    today: Optional[date] = None) -> Dict[str, str]:
    meta = {key.lower(): value for key, value in (meta or {}).items() if value}
    today = today or date.today()
    return {
        'Event': meta.get('event', 'Chess Session Game'),
        'Site': meta.get('site', 'Local'),
        'Date': meta.get('date', today.strftime('%Y.%m.%d')),
        'Round': meta.get('round', '-'),
        'White': meta.get('white', 'Player'),
        'Black': meta.get('black', 'AI'),
        'Result': meta.get('result', result_token(status)),
    }


def _escape(value: str) -> str:
    return str(value).replace('\\', '\\\\').replace('"', '\\"')


def _render(notations: List[str], headers: Dict[str, str], status) -> str:
    lines = [f'[{key} "{_escape(headers[key])}"]' for key in HEADER_ORDER]
    lines.append('')
    for ply in range(0, len(notations), 2):
        pair = notations[ply:ply + 2]
        lines.append(f"{ply // 2 + 1}. {' '.join(pair)}")
    lines.append(result_token(status))
    return '\n'.join(lines)


def build(history: Iterable[Move], meta: Optional[Dict[str, str]] = None,
          status=None, today: Optional[date] = None) -> str:
    """
    Build a transcript from a move history.

    Each ply uses its recorded notation, falling back to the coordinate form.
    An empty history yields an empty string, meaning nothing to export.
    """
    moves = list(history)
    if not moves:
        return ''
    headers = default_headers(meta, status, today)
    return _render([move.display_notation() for move in moves], headers, status)


def build_coordinate(history: Iterable[Move], meta: Optional[Dict[str, str]] = None,
                     status=None, today: Optional[date] = None) -> str:
    """Like :func:`build` but always emits coordinate notation."""
    moves = list(history)
    if not moves:
        return ''
    headers = default_headers(meta, status, today)
    return _render([move.coordinate() for move in moves], headers, status)


def parse_headers(text: str) -> Dict[str, str]:
    headers: Dict[str, str] = {}
    for line in (text or '').splitlines():
        match = _HEADER_RE.match(line.strip())
        if match:
            headers[match.group(1)] = match.group(2).replace('\\"', '"').replace('\\\\', '\\')
    return headers


def parse_coordinate_moves(text: str) -> List[Move]:
    """Extract coordinate moves from a transcript, in order.

    Header lines, move numbers and result tokens are discarded; any token that
    is not a strict coordinate move is skipped silently.
    """
    if not text:
        return []
    body = '\n'.join(
        line for line in text.splitlines() if not line.lstrip().startswith('[')
    )
    moves: List[Move] = []
    for token in body.split():
        if _MOVE_NUMBER_RE.match(token) or _RESULT_RE.match(token):
            continue
        if Move.is_coordinate_token(token):
            moves.append(Move.from_coordinate(token))
    return moves


def validate_coordinate(token: str) -> Move:
    """Parse a single coordinate token, raising ``ValidationError`` if invalid."""
    return Move.from_coordinate((token or '').strip())
