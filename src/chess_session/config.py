"""Environment-driven settings."""

from dataclasses import dataclass
from typing import Mapping, Optional
import os

from dotenv import load_dotenv

from .models import Color, PlayMode

_TRUTHY = {'1', 'true', 'yes', 'on'}


def _flag(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in _TRUTHY


@dataclass(frozen=True)
class Settings:
    authority_url: str = 'http://localhost:8080'
    authority_timeout: float = 10.0
    authority_retries: int = 3
    storage_backend: str = 'file'
    storage_dir: str = 'var/chess_session'
    database_url: Optional[str] = None
    play_mode: PlayMode = PlayMode.HUMAN_VS_AI
    human_color: Color = Color.WHITE
    ai_level: str = 'medium'
    ai_engine: str = 'minimax'
    secret_key: str = 'dev-secret-change-in-production'
    session_cookie_name: str = 'chess_session'
    session_cookie_secure: bool = False
    session_cookie_samesite: str = 'Lax'
    session_file_dir: str = 'var/flask_session'
    debug: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'Settings':
        """Load settings from ``environ`` (``os.environ`` after ``.env`` by default)."""
        if environ is None:
            load_dotenv()
            environ = os.environ
        defaults = cls()
        try:
            timeout = float(environ.get('CHESS_AUTHORITY_TIMEOUT', defaults.authority_timeout))
            retries = int(environ.get('CHESS_AUTHORITY_RETRIES', defaults.authority_retries))
        except ValueError as exc:
            raise ValueError(f'Invalid authority setting: {exc}') from exc
        return cls(
            authority_url=environ.get('CHESS_AUTHORITY_URL', defaults.authority_url),
            authority_timeout=timeout,
            authority_retries=retries,
            storage_backend=environ.get('CHESS_STORAGE_BACKEND', defaults.storage_backend).lower(),
            storage_dir=environ.get('CHESS_STORAGE_DIR', defaults.storage_dir),
            database_url=environ.get('CHESS_DATABASE_URL') or environ.get('DATABASE_URL'),
            play_mode=PlayMode(environ.get('CHESS_PLAY_MODE', defaults.play_mode.value)),
            human_color=Color.parse(environ.get('CHESS_HUMAN_COLOR'), defaults.human_color),
            ai_level=environ.get('CHESS_AI_LEVEL', defaults.ai_level),
            ai_engine=environ.get('CHESS_AI_ENGINE', defaults.ai_engine),
            secret_key=environ.get('SESSION_SECRET', defaults.secret_key),
            session_cookie_name=environ.get('SESSION_COOKIE_NAME', defaults.session_cookie_name),
            session_cookie_secure=_flag(environ.get('SECURE_COOKIES')),
            session_cookie_samesite=environ.get('SESSION_COOKIE_SAMESITE',
                                                defaults.session_cookie_samesite),
            session_file_dir=environ.get('SESSION_FILE_DIR', defaults.session_file_dir),
            debug=_flag(environ.get('DEBUG')),
        )
