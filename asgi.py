"""
asgi.py -- ASGI entry point for authgate.

Settings are read from the environment / .env at import time.

Run with:  uvicorn asgi:app --reload
"""

from api.main import create_app

app = create_app()
