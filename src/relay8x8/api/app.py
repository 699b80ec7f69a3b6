"""ASGI entrypoint: ``uvicorn relay8x8.api.app:app``."""

from .factory import create_app

app = create_app()
