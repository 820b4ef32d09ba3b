"""HTTP API for PieceJob.

Run with ``uvicorn piecejob.api.main:app``.
"""

from piecejob.api.app import create_app

__all__ = ["create_app"]
