"""
WebSocket handlers for live map sessions.

This module provides:
- Map event dispatch into per-session view-sync controllers
- View state snapshots pushed after every event
"""

from .map_session_handler import InvalidMessageError, MapSessionHandler

__all__ = [
    'InvalidMessageError',
    'MapSessionHandler',
]
