"""FastAPI application entrypoint.

Usage:
    uvicorn wisdom_api.app:app --app-dir backend --port $PORT
"""
from wisdom_api.main import create_app

app = create_app()

__all__ = ["app"]
