"""Move representation exchanged with the move authority."""

from dataclasses import dataclass
from typing import Any, Dict, Optional
import re

from ..errors import ValidationError
from .enums import MoveKind

SQUARE_RE = re.compile(r'^[a-h][1-8]$')
COORDINATE_RE = re.compile(r'^[a-h][1-8][a-h][1-8][qrbnQRBN]?$')

PROMOTION_LETTERS = {
    'q': 'q', 'r': 'r', 'b': 'b', 'n': 'n',
    'queen': 'q', 'rook': 'r', 'bishop': 'b', 'knight': 'n',
}

CASTLING_NOTATIONS = ('O-O', 'O-O-O')


def _castling_token(notation: Optional[str]) -> Optional[str]:
    if not notation:
        return None
    token = notation.strip().rstrip('+#').replace('0', 'O')
    return token if token in CASTLING_NOTATIONS else None


@dataclass(frozen=True)
class Move:
    """A single ply as recorded by the authority.

    ``from_square`` and ``to_square`` are ``a1``..``h8``. ``promotion`` keeps
    whatever value was recorded when the move was first played so that a
    replay submits exactly the same request.
    """

    from_square: str
    to_square: str
    promotion: Optional[str] = None
    notation: Optional[str] = None
    kind: Optional[MoveKind] = None

    def __post_init__(self):
        if not isinstance(self.from_square, str) or not SQUARE_RE.match(self.from_square):
            raise ValidationError(f'Invalid square: {self.from_square!r}')
        if not isinstance(self.to_square, str) or not SQUARE_RE.match(self.to_square):
            raise ValidationError(f'Invalid square: {self.to_square!r}')
        if self.promotion is not None and self.promotion_letter is None:
            raise ValidationError(f'Invalid promotion piece: {self.promotion!r}')

    @property
    def promotion_letter(self) -> Optional[str]:
        """Lower-case single letter for the promotion piece, if any."""
        if not isinstance(self.promotion, str):
            return None
        return PROMOTION_LETTERS.get(self.promotion.strip().lower())

    @property
    def is_castling(self) -> bool:
        return self.kind is MoveKind.CASTLING or _castling_token(self.notation) is not None

    def castling_notation(self) -> str:
        """Return the notation token used to resubmit a castling move."""
        token = _castling_token(self.notation)
        if token:
            return token
        return 'O-O' if self.to_square[0] == 'g' else 'O-O-O'

    def coordinate(self) -> str:
        """Return the ``<from><to>[promotion]`` form of this move."""
        return f'{self.from_square}{self.to_square}{self.promotion_letter or ""}'

    def display_notation(self) -> str:
        return self.notation or self.coordinate()

    def to_request(self) -> Dict[str, Any]:
        """Build the submit-move payload for this move."""
        if self.is_castling:
            return {'notation': self.castling_notation()}
        payload: Dict[str, Any] = {'from': self.from_square, 'to': self.to_square}
        if self.promotion is not None:
            payload['promotion'] = self.promotion
        return payload

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {'from': self.from_square, 'to': self.to_square}
        if self.promotion is not None:
            data['promotion'] = self.promotion
        if self.notation is not None:
            data['notation'] = self.notation
        if self.kind is not None:
            data['type'] = self.kind.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Move':
        """Create a move from an authority or snapshot dictionary.

        Unknown keys (``piece``, ``is_capture`` and the like) are ignored.
        """
        if not isinstance(data, dict):
            raise ValidationError('Move must be an object')
        notation = data.get('notation')
        promotion = data.get('promotion')
        return cls(
            from_square=data.get('from'),
            to_square=data.get('to'),
            promotion=promotion if promotion else None,
            notation=notation if isinstance(notation, str) and notation else None,
            kind=MoveKind.parse(data.get('type')),
        )

    @staticmethod
    def is_coordinate_token(token: str) -> bool:
        return isinstance(token, str) and COORDINATE_RE.match(token) is not None

    @classmethod
    def from_coordinate(cls, token: str) -> 'Move':
        """Parse a strict ``e2e4`` / ``e7e8q`` coordinate token."""
        if not cls.is_coordinate_token(token):
            raise ValidationError(f'Not a coordinate move: {token!r}')
        return cls(
            from_square=token[0:2],
            to_square=token[2:4],
            promotion=token[4].lower() if len(token) == 5 else None,
        )
