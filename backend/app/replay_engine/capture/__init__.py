"""
Capture Module

Turns a live stream of raw interaction events into an ordered action buffer.
"""

from .controller import CaptureController, CaptureStatus, RecordingState, default_device_descriptor
from .event_mapper import EventMapper, derive_scroll_direction, payload_widget_introspector
from .event_source import EventSource, QueueEventSource
from .exclusion import ExclusionConfig, ExclusionPolicy

__all__ = [
    "CaptureController",
    "CaptureStatus",
    "RecordingState",
    "default_device_descriptor",
    "EventMapper",
    "derive_scroll_direction",
    "payload_widget_introspector",
    "EventSource",
    "QueueEventSource",
    "ExclusionConfig",
    "ExclusionPolicy",
]
