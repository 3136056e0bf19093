"""HTTP client for the external move authority."""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional
import logging
import time

import requests

from .errors import AuthorityRejected, AuthorityUnreachable, NotFound, ValidationError
from .models import Color, GameState, Move

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthorityConfig:
    base_url: str = 'http://localhost:8080'
    timeout: float = 10.0
    retries: int = 3
    backoff: float = 1.0


class AuthorityClient:
    """Thin wrapper over the move authority's REST endpoints.

    GET requests are retried with a linear backoff on transport failures and
    5xx responses. Other methods change remote state, so they are only resent
    when the connection could not be made; a read timeout or a 5xx on a POST
    raises :class:`AuthorityUnreachable` at once.
    A 404 means the game is gone and raises :class:`NotFound`; any other 4xx
    is a refusal and raises :class:`AuthorityRejected`. Neither is retried.
    """

    def __init__(self, config: Optional[AuthorityConfig] = None,
                 http: Optional[requests.Session] = None, sleep=time.sleep):
        self.config = config or AuthorityConfig()
        self._http = http or requests.Session()
        self._sleep = sleep

    def close(self) -> None:
        self._http.close()

    def _url(self, path: str) -> str:
        return f"{self.config.base_url.rstrip('/')}{path}"

    def _request(self, method: str, path: str, payload: Optional[dict] = None) -> Any:
        url = self._url(path)
        idempotent = method == 'GET'
        attempts = max(1, self.config.retries)
        for attempt in range(1, attempts + 1):
            try:
                response = self._http.request(
                    method, url, json=payload, timeout=self.config.timeout
                )
            except requests.RequestException as exc:
                error = AuthorityUnreachable(f'{method} {path} failed: {exc}')
                # a POST that may have reached the authority is never resent
                if not idempotent and not isinstance(exc, requests.ConnectionError):
                    raise error from exc
            else:
                status = response.status_code
                if status == 404:
                    raise NotFound(f'{method} {path}: not found')
                if 400 <= status < 500:
                    raise AuthorityRejected(
                        f'HTTP {status}: {response.reason}',
                        status=status,
                        response=response.text,
                    )
                if status < 400:
                    try:
                        return response.json()
                    except ValueError as exc:
                        raise AuthorityUnreachable(
                            f'{method} {path} returned invalid JSON', status=status
                        ) from exc
                error = AuthorityUnreachable(
                    f'HTTP {status}: {response.reason}',
                    status=status,
                    response=response.text,
                )
                if not idempotent:
                    raise error

            if attempt < attempts:
                logger.warning('Authority request failed, retrying (%s/%s): %s',
                               attempt, attempts, error)
                self._sleep(self.config.backoff * attempt)
        raise error

    def create_game(self, player_color: Optional[Color] = None) -> GameState:
        """Create a new game; the AI plays the color opposite ``player_color``."""
        body: Dict[str, Any] = {}
        if player_color is not None:
            body['ai_color'] = Color(player_color).opponent.value
        return GameState.from_payload(self._request('POST', '/api/games', body))

    def get_game(self, game_id) -> GameState:
        return GameState.from_payload(self._request('GET', f'/api/games/{game_id}'))

    def submit_move(self, game_id, move: Move) -> GameState:
        """Submit ``move`` and return the resulting game state."""
        data = self._request('POST', f'/api/games/{game_id}/moves', move.to_request())
        return GameState.from_payload(data)

    def legal_moves(self, game_id) -> List[Move]:
        """Return legal moves, or an empty list if the endpoint is missing."""
        try:
            data = self._request('GET', f'/api/games/{game_id}/legal-moves')
        except NotFound:
            logger.warning('Legal moves endpoint not available for game %s', game_id)
            return []
        except AuthorityUnreachable as exc:
            if exc.status == 501:
                return []
            raise
        raw = data.get('legal_moves', []) if isinstance(data, dict) else data
        if not isinstance(raw, list):
            raise AuthorityUnreachable('Malformed legal moves payload')
        try:
            return [Move.from_dict(item) for item in raw]
        except ValidationError as exc:
            raise AuthorityUnreachable(f'Malformed legal move: {exc}') from exc

    def ai_move(self, game_id, level: str = 'medium', engine: str = 'minimax') -> Move:
        """Ask the authority to play the AI's reply and return that move."""
        data = self._request('POST', f'/api/games/{game_id}/ai-move',
                             {'level': level, 'engine': engine})
        if not isinstance(data, dict) or not isinstance(data.get('move'), dict):
            raise AuthorityUnreachable('Malformed AI move payload')
        try:
            return Move.from_dict(data['move'])
        except ValidationError as exc:
            raise AuthorityUnreachable(f'Malformed AI move: {exc}') from exc

    def health(self) -> bool:
        try:
            self._request('GET', '/health')
        except (AuthorityUnreachable, AuthorityRejected, NotFound) as exc:
            logger.error('Authority health check failed: %s', exc)
            return False
        return True
