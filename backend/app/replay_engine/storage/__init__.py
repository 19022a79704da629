"""
Storage Module

JSON persistence of recordings.
"""

from .serializer import SessionSerializer

__all__ = [
    "SessionSerializer"
]
