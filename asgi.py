"""
asgi.py -- Application assembly for the HR training API.

Builds the app from environment settings and the configured provider adapter.

Run with:  uvicorn asgi:app --reload
"""

from api.main import create_app

app = create_app()
