"""
asgi.py -- ASGI entry point for the ZapMenu auth service.

Run with:  uvicorn asgi:app --reload

api/main.py owns app assembly. This module exists so deployment tooling has
one stable import path regardless of how the api/ package is organized.
"""

from api.main import app

__all__ = ["app"]
