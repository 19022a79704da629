"""
Action Model

Canonical representation of one recordable/replayable unit. Each action
kind is its own model; `Action` is the discriminated union over the `type`
field. Attribute names are snake_case, persisted keys are camelCase.
"""

from enum import Enum
from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from ..errors import ValidationError


class ActionType(str, Enum):
    """Wire tags of the action variants"""
    APP_LAUNCH = "app_launch"
    CLICK = "click"
    LONG_CLICK = "long_click"
    INPUT = "input"
    SCROLL = "scroll"
    SWIPE = "swipe"
    WAIT = "wait"
    SESSION_START = "session_start"
    SESSION_END = "session_end"
    SESSION_PAUSE = "session_pause"


SESSION_MARKER_TYPES = frozenset({
    ActionType.SESSION_START.value,
    ActionType.SESSION_END.value,
    ActionType.SESSION_PAUSE.value,
})


class ScrollDirection(str, Enum):
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"
    UNKNOWN = "unknown"


class WireModel(BaseModel):
    """Base model: camelCase on the wire, either spelling accepted, extras ignored"""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    def to_record(self) -> Dict[str, Any]:
        """Serialize to a JSON-ready dict, omitting absent fields"""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Bounds(WireModel):
    """Screen rectangle of a widget"""
    left: int
    top: int
    right: int
    bottom: int

    @property
    def center_x(self) -> int:
        return (self.left + self.right) // 2

    @property
    def center_y(self) -> int:
        return (self.top + self.bottom) // 2

    @property
    def width(self) -> int:
        return self.right - self.left

    @property
    def height(self) -> int:
        return self.bottom - self.top


class WidgetDescriptor(WireModel):
    """Introspected on-screen element an interaction targeted"""
    class_name: Optional[str] = None
    text: Optional[str] = None
    accessible_label: Optional[str] = None
    resource_id: Optional[str] = None
    bounds: Optional[Bounds] = None
    is_clickable: Optional[bool] = None
    is_long_clickable: Optional[bool] = None
    is_editable: Optional[bool] = None
    is_scrollable: Optional[bool] = None

    def label(self) -> Optional[str]:
        """Best human-readable name for the widget"""
        return self.text or self.accessible_label or self.resource_id


class BaseAction(WireModel):
    """Fields common to every action kind"""
    timestamp: int = Field(ge=0)  # ms relative to recording start
    source_identity: Optional[str] = None
    description: Optional[str] = None

    def describe(self) -> str:
        return self.description or self.type  # type: ignore[attr-defined]


class AppLaunchAction(BaseAction):
    type: Literal["app_launch"] = "app_launch"
    target_identity: str
    screen_label: Optional[str] = None

    def describe(self) -> str:
        return self.description or f"Launch app: {self.target_identity}"


class _WidgetAction(BaseAction):
    widget: Optional[WidgetDescriptor] = None

    @property
    def bounds(self) -> Optional[Bounds]:
        return self.widget.bounds if self.widget else None

    def _widget_label(self) -> str:
        label = self.widget.label() if self.widget else None
        return label or "unknown element"


class ClickAction(_WidgetAction):
    type: Literal["click"] = "click"

    def describe(self) -> str:
        return self.description or f"Click: {self._widget_label()}"


class LongClickAction(_WidgetAction):
    type: Literal["long_click"] = "long_click"

    def describe(self) -> str:
        return self.description or f"Long click: {self._widget_label()}"


class InputAction(_WidgetAction):
    type: Literal["input"] = "input"
    text: str

    def describe(self) -> str:
        return self.description or f"Input: {self.text}"


class ScrollAction(BaseAction):
    type: Literal["scroll"] = "scroll"
    direction: Optional[ScrollDirection] = None
    scroll_x: Optional[int] = None
    scroll_y: Optional[int] = None
    max_scroll_x: Optional[int] = None
    max_scroll_y: Optional[int] = None

    def describe(self) -> str:
        direction = self.direction or ScrollDirection.UNKNOWN
        return self.description or f"Scroll: {direction.value}"


class SwipeAction(BaseAction):
    type: Literal["swipe"] = "swipe"
    start_x: int
    start_y: int
    end_x: Optional[int] = None
    end_y: Optional[int] = None
    duration_ms: Optional[int] = Field(default=None, ge=0)
    pressure: Optional[float] = None

    def describe(self) -> str:
        if self.description:
            return self.description
        if self.end_x is None or self.end_y is None:
            return f"Swipe from ({self.start_x}, {self.start_y})"
        return f"Swipe ({self.start_x}, {self.start_y}) -> ({self.end_x}, {self.end_y})"


class WaitAction(BaseAction):
    type: Literal["wait"] = "wait"
    duration_ms: int = Field(ge=0)

    def describe(self) -> str:
        return self.description or f"Wait {self.duration_ms}ms"


class _SessionMarker(BaseAction):
    metadata: Optional[Dict[str, Any]] = None


class SessionStartAction(_SessionMarker):
    type: Literal["session_start"] = "session_start"


class SessionEndAction(_SessionMarker):
    type: Literal["session_end"] = "session_end"


class SessionPauseAction(_SessionMarker):
    type: Literal["session_pause"] = "session_pause"


Action = Annotated[
    Union[
        AppLaunchAction,
        ClickAction,
        LongClickAction,
        InputAction,
        ScrollAction,
        SwipeAction,
        WaitAction,
        SessionStartAction,
        SessionEndAction,
        SessionPauseAction,
    ],
    Field(discriminator="type"),
]

_action_adapter: TypeAdapter = TypeAdapter(Action)


def parse_action(data: Dict[str, Any]) -> Action:
    """
    Validate one action record.

    Raises:
        ValidationError: if the record has no known `type` or invalid fields
    """
    try:
        return _action_adapter.validate_python(data)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid action record: {e}") from e


def is_session_marker(action: BaseAction) -> bool:
    return action.type in SESSION_MARKER_TYPES  # type: ignore[attr-defined]
