"""API routes package.

This package contains all API route handlers for the application.
"""
from . import analyze
from . import codec
from . import generate
from . import solve

__all__ = [
    "analyze",
    "codec",
    "generate",
    "solve",
]
