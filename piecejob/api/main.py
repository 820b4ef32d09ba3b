"""ASGI entry point: ``uvicorn piecejob.api.main:app``."""

from piecejob.api.app import create_app

app = create_app()
