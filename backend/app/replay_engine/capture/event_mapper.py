"""
Event Mapper

Turns raw interaction notifications into canonical actions.

Raw events are plain mappings carrying `eventKind`, `sourceIdentity` and a
kind-specific payload. Accessibility-style kinds (view_clicked, ...) and
the explicit push kinds (click, input, ...) map onto the same actions.
"""

import logging
from typing import Any, Callable, Dict, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from ..errors import ValidationError
from ..models.actions import (
    Action,
    AppLaunchAction,
    ClickAction,
    InputAction,
    LongClickAction,
    ScrollAction,
    ScrollDirection,
    SwipeAction,
    WaitAction,
    WidgetDescriptor,
)

logger = logging.getLogger(__name__)

WidgetIntrospector = Callable[[Mapping[str, Any]], Optional[WidgetDescriptor]]
LabelResolver = Callable[[str], str]

# Raw event kind -> canonical action type
EVENT_KIND_ALIASES: Dict[str, str] = {
    "view_clicked": "click",
    "click": "click",
    "view_long_clicked": "long_click",
    "long_click": "long_click",
    "view_text_changed": "input",
    "input": "input",
    "view_scrolled": "scroll",
    "scroll": "scroll",
    "window_state_changed": "app_launch",
    "app_launch": "app_launch",
    "swipe": "swipe",
    "wait": "wait",
}

# Kinds that are understood but never recorded
IGNORED_EVENT_KINDS = frozenset({"window_content_changed"})


def event_kind(raw: Mapping[str, Any]) -> Optional[str]:
    kind = raw.get("eventKind") or raw.get("type")
    return str(kind).strip().lower() if kind else None


def source_identity(raw: Mapping[str, Any]) -> Optional[str]:
    identity = raw.get("sourceIdentity") or raw.get("packageName")
    return str(identity) if identity else None


def payload_widget_introspector(raw: Mapping[str, Any]) -> Optional[WidgetDescriptor]:
    """Default introspection: read a widget description carried by the event itself"""
    data = raw.get("widget") or raw.get("node") or raw.get("nodeInfo")
    if not data:
        return None
    if isinstance(data, WidgetDescriptor):
        return data
    if not isinstance(data, Mapping):
        raise ValidationError(f"Widget payload must be an object, got {type(data).__name__}")

    data = dict(data)
    if "contentDescription" in data and "accessibleLabel" not in data:
        data["accessibleLabel"] = data.pop("contentDescription")
    try:
        return WidgetDescriptor.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid widget payload: {e}") from e


def _as_int(raw: Mapping[str, Any], *keys: str, required: bool = False) -> Optional[int]:
    for key in keys:
        value = raw.get(key)
        if value is None:
            continue
        if isinstance(value, bool):
            raise ValidationError(f"Field '{key}' must be a number")
        try:
            return int(float(value))
        except (TypeError, ValueError):
            raise ValidationError(f"Field '{key}' must be a number, got {value!r}")
    if required:
        raise ValidationError(f"Missing required field '{keys[0]}'")
    return None


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return "".join(str(part) for part in value)
    return str(value)


def derive_scroll_direction(
    scroll_x: Optional[int],
    scroll_y: Optional[int],
    max_scroll_x: Optional[int],
    max_scroll_y: Optional[int],
) -> ScrollDirection:
    """Guess the scroll direction from the raw scroll extents"""
    sx, sy = scroll_x or 0, scroll_y or 0
    mx, my = max_scroll_x or 0, max_scroll_y or 0

    if sy > 0 and my > 0:
        return ScrollDirection.UP
    if sy == 0 and my > 0:
        return ScrollDirection.DOWN
    if sx > 0 and mx > 0:
        return ScrollDirection.LEFT
    if sx == 0 and mx > 0:
        return ScrollDirection.RIGHT
    return ScrollDirection.UNKNOWN


class EventMapper:
    """
    Maps raw events to actions.

    Widget introspection and app label lookup are external capabilities
    injected at construction.
    """

    def __init__(
        self,
        introspector: Optional[WidgetIntrospector] = None,
        label_resolver: Optional[LabelResolver] = None,
    ):
        self.introspector = introspector or payload_widget_introspector
        self.label_resolver = label_resolver

    def map(self, raw: Mapping[str, Any], timestamp: int) -> Optional[Action]:
        """
        Map one raw event.

        Returns:
            The action, or None if the event kind is deliberately not recorded

        Raises:
            ValidationError: if the event is malformed or of an unknown kind
        """
        if not isinstance(raw, Mapping):
            raise ValidationError(f"Raw event must be a mapping, got {type(raw).__name__}")

        kind = event_kind(raw)
        if not kind:
            raise ValidationError("Raw event has no eventKind")
        if kind in IGNORED_EVENT_KINDS:
            return None

        action_type = EVENT_KIND_ALIASES.get(kind)
        if action_type is None:
            raise ValidationError(f"Unknown event kind: {kind}")

        builder = getattr(self, f"_build_{action_type}")
        try:
            action = builder(raw, timestamp, source_identity(raw))
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid {kind} event: {e}") from e

        if action is not None and not action.description:
            action = action.model_copy(update={"description": action.describe()})
        return action

    # ==================== Builders ====================

    def _widget(self, raw: Mapping[str, Any]) -> Optional[WidgetDescriptor]:
        try:
            return self.introspector(raw)
        except Exception as e:
            logger.warning(f"Widget introspection failed: {e}")
            return None

    def _app_label(self, identity: str) -> str:
        if not self.label_resolver:
            return identity
        try:
            return self.label_resolver(identity) or identity
        except Exception as e:
            logger.debug(f"Could not resolve label for {identity}: {e}")
            return identity

    def _build_app_launch(self, raw, timestamp, identity) -> Optional[Action]:
        target = raw.get("targetIdentity") or identity
        if not target:
            raise ValidationError("App launch event has no target identity")
        return AppLaunchAction(
            timestamp=timestamp,
            source_identity=identity,
            target_identity=str(target),
            screen_label=raw.get("screenLabel") or raw.get("className"),
            description=raw.get("description") or f"Launch app: {self._app_label(str(target))}",
        )

    def _build_click(self, raw, timestamp, identity) -> Optional[Action]:
        return ClickAction(
            timestamp=timestamp,
            source_identity=identity,
            widget=self._widget(raw),
            description=raw.get("description"),
        )

    def _build_long_click(self, raw, timestamp, identity) -> Optional[Action]:
        return LongClickAction(
            timestamp=timestamp,
            source_identity=identity,
            widget=self._widget(raw),
            description=raw.get("description"),
        )

    def _build_input(self, raw, timestamp, identity) -> Optional[Action]:
        text = _as_text(raw.get("text"))
        if not text:
            return None
        return InputAction(
            timestamp=timestamp,
            source_identity=identity,
            text=text,
            widget=self._widget(raw),
            description=raw.get("description"),
        )

    def _build_scroll(self, raw, timestamp, identity) -> Optional[Action]:
        scroll_x = _as_int(raw, "scrollX")
        scroll_y = _as_int(raw, "scrollY")
        max_scroll_x = _as_int(raw, "maxScrollX")
        max_scroll_y = _as_int(raw, "maxScrollY")

        explicit = raw.get("direction") or raw.get("scrollDirection")
        if explicit:
            try:
                direction = ScrollDirection(str(explicit).lower())
            except ValueError:
                raise ValidationError(f"Unknown scroll direction: {explicit}")
        else:
            direction = derive_scroll_direction(scroll_x, scroll_y, max_scroll_x, max_scroll_y)

        return ScrollAction(
            timestamp=timestamp,
            source_identity=identity,
            direction=direction,
            scroll_x=scroll_x,
            scroll_y=scroll_y,
            max_scroll_x=max_scroll_x,
            max_scroll_y=max_scroll_y,
            description=raw.get("description"),
        )

    def _build_swipe(self, raw, timestamp, identity) -> Optional[Action]:
        gesture = raw.get("gesture")
        source = gesture if isinstance(gesture, Mapping) else raw

        pressure = source.get("pressure")
        return SwipeAction(
            timestamp=timestamp,
            source_identity=identity,
            start_x=_as_int(source, "startX", "swipeStartX", required=True),
            start_y=_as_int(source, "startY", "swipeStartY", required=True),
            end_x=_as_int(source, "endX", "swipeEndX"),
            end_y=_as_int(source, "endY", "swipeEndY"),
            duration_ms=_as_int(source, "durationMs", "duration"),
            pressure=float(pressure) if pressure is not None else None,
            description=raw.get("description"),
        )

    def _build_wait(self, raw, timestamp, identity) -> Optional[Action]:
        return WaitAction(
            timestamp=timestamp,
            source_identity=identity,
            duration_ms=_as_int(raw, "durationMs", "waitDuration", required=True),
            description=raw.get("description"),
        )
