"""
API routes package.
"""

from app.api import manual_quotes

__all__ = [
    "manual_quotes",
]
