"""ASGI entry point: ``uvicorn chess_session.asgi:asgi_app``."""

from .app import create_asgi_app

asgi_app = create_asgi_app()
