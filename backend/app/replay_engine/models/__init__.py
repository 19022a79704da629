"""
Models Module

Canonical action variants and the persisted recording document.
"""

from .actions import (
    Action,
    ActionType,
    AppLaunchAction,
    Bounds,
    ClickAction,
    InputAction,
    LongClickAction,
    ScrollAction,
    ScrollDirection,
    SessionEndAction,
    SessionPauseAction,
    SessionStartAction,
    SwipeAction,
    WaitAction,
    WidgetDescriptor,
    is_session_marker,
    parse_action,
)
from .recording import FORMAT_VERSION, Recording

__all__ = [
    "Action",
    "ActionType",
    "AppLaunchAction",
    "Bounds",
    "ClickAction",
    "InputAction",
    "LongClickAction",
    "ScrollAction",
    "ScrollDirection",
    "SessionEndAction",
    "SessionPauseAction",
    "SessionStartAction",
    "SwipeAction",
    "WaitAction",
    "WidgetDescriptor",
    "is_session_marker",
    "parse_action",
    "FORMAT_VERSION",
    "Recording",
]
