"""Browser identity helpers using the server-side session."""

from typing import Optional
import uuid

from flask import current_app, session

from .session import GameSession, SessionRegistry

CLIENT_KEY = 'client_id'
REGISTRY_EXTENSION = 'chess_session'


def get_client_id(create: bool = True) -> Optional[str]:
    """Return the id used to namespace this browser's saves."""
    client_id = session.get(CLIENT_KEY)
    if not client_id and create:
        client_id = uuid.uuid4().hex
        session[CLIENT_KEY] = client_id
        session.modified = True
    return client_id


def get_registry() -> SessionRegistry:
    return current_app.extensions[REGISTRY_EXTENSION]


def get_game_session(start: bool = True) -> GameSession:
    """Return the caller's game session, starting it on first use."""
    game_session = get_registry().get(get_client_id())
    if start and game_session.game is None:
        game_session.start()
    return game_session


def end_game_session() -> None:
    """Dispose of the caller's in-memory session; saves and autosave are kept."""
    client_id = get_client_id(create=False)
    if client_id:
        get_registry().discard(client_id)
