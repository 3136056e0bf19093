"""Flask application serving the chess session API."""

from typing import Optional
import logging
import os

from flask import Flask, jsonify
from flask_session import Session
from asgiref.wsgi import WsgiToAsgi

from .authority import AuthorityClient, AuthorityConfig
from .config import Settings
from .errors import StorageError
from .identity import REGISTRY_EXTENSION
from .preferences import PreferencesStore
from .session import GameSession, SessionRegistry
from .storage import FileBackend, MemoryBackend, PostgresBackend, DbConfig, SnapshotStore


def _build_backend(settings: Settings):
    """Pick the storage backend named by ``CHESS_STORAGE_BACKEND``."""
    if settings.storage_backend == 'memory':
        return MemoryBackend()
    if settings.storage_backend == 'file':
        return FileBackend(os.path.abspath(settings.storage_dir))
    if settings.storage_backend == 'postgres':
        if not settings.database_url:
            raise StorageError('CHESS_STORAGE_BACKEND=postgres requires CHESS_DATABASE_URL')
        backend = PostgresBackend(DbConfig(dsn=settings.database_url))
        backend.create_table()
        return backend
    raise ValueError(f'Unknown storage backend: {settings.storage_backend}')


def create_app(settings: Optional[Settings] = None, authority=None, backend=None):
    """Create and configure the Flask application."""
    settings = settings or Settings.from_env()
    app = Flask(__name__)

    # Configure session
    app.config['SECRET_KEY'] = settings.secret_key
    app.config['SESSION_TYPE'] = 'filesystem'
    app.config['SESSION_FILE_DIR'] = os.path.abspath(settings.session_file_dir)
    app.config['SESSION_COOKIE_NAME'] = settings.session_cookie_name
    app.config['SESSION_COOKIE_SECURE'] = settings.session_cookie_secure
    app.config['SESSION_COOKIE_SAMESITE'] = settings.session_cookie_samesite
    app.config['DEBUG_UI'] = settings.debug
    Session(app)

    if settings.debug:
        app.logger.setLevel(logging.DEBUG)

    if authority is None:
        authority = AuthorityClient(AuthorityConfig(
            base_url=settings.authority_url,
            timeout=settings.authority_timeout,
            retries=settings.authority_retries,
        ))
    if backend is None:
        backend = _build_backend(settings)

    def _session_factory(client_id: str) -> GameSession:
        preferences = PreferencesStore(backend, client_id).load()
        return GameSession(
            authority,
            SnapshotStore(backend, namespace=client_id),
            mode=settings.play_mode,
            human_color=settings.human_color,
            player_name=preferences.player_name,
            enable_undo=preferences.enable_undo,
            ai_level=settings.ai_level,
            ai_engine=settings.ai_engine,
        )

    app.extensions[REGISTRY_EXTENSION] = SessionRegistry(_session_factory)
    app.extensions['chess_session.settings'] = settings
    app.extensions['chess_session.authority'] = authority

    # Register the API blueprint with Swagger documentation
    from .api import api_bp
    app.register_blueprint(api_bp)

    @app.after_request
    def disable_cache(response):
        response.headers['Cache-Control'] = 'no-store, no-cache, must-revalidate, max-age=0'
        response.headers['Pragma'] = 'no-cache'
        response.headers['Expires'] = '0'
        return response

    @app.route('/health')
    def health():
        """Report whether the move authority answers."""
        reachable = authority.health()
        return jsonify({'ok': reachable, 'authority': reachable}), (200 if reachable else 503)

    return app


def main():
    """Main entry point for running the application."""
    logging.basicConfig(level=logging.INFO)
    settings = Settings.from_env()

    logging.getLogger(__name__).info(
        'Serving %s play against %s with %s storage; docs at /api/docs',
        settings.play_mode.value, settings.authority_url, settings.storage_backend,
    )

    app = create_app(settings)
    app.run(debug=settings.debug, host='127.0.0.1', port=5000)


def create_asgi_app():
    """Create ASGI-wrapped Flask application for deployment behind ASGI servers."""
    return WsgiToAsgi(create_app())


# For development
if __name__ == '__main__':
    main()
