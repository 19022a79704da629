"""
Unit tests for EventMapper.

Tests mapping of raw interaction events to canonical actions.
"""

import pytest
from pathlib import Path
from unittest.mock import Mock
import sys

sys.path.insert(0, str(Path(__file__).parent.parent.parent / "app"))

from replay_engine.capture.event_mapper import EventMapper, derive_scroll_direction
from replay_engine.errors import ValidationError
from replay_engine.models import (
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


@pytest.fixture
def mapper():
    return EventMapper()


class TestWidgetActions:
    """Test click, long click and input mapping."""

    def test_click(self, mapper, click_event):
        action = mapper.map(click_event, 120)

        assert isinstance(action, ClickAction)
        assert action.timestamp == 120
        assert action.source_identity == "com.example.shop"
        assert action.widget.text == "Login"
        assert action.bounds.center_x == 200
        assert action.description == "Click: Login"

    def test_push_kind_alias(self, mapper):
        """Test explicit push kinds map like accessibility kinds."""
        action = mapper.map({"eventKind": "long_click", "sourceIdentity": "com.example.shop"}, 5)

        assert isinstance(action, LongClickAction)
        assert action.widget is None
        assert action.description == "Long click: unknown element"

    def test_content_description_becomes_label(self, mapper):
        action = mapper.map({
            "eventKind": "click",
            "sourceIdentity": "com.example.shop",
            "node": {"contentDescription": "Cart"},
        }, 0)

        assert action.widget.accessible_label == "Cart"
        assert action.description == "Click: Cart"

    def test_input_joins_fragments(self, mapper, input_event):
        action = mapper.map(input_event, 340)

        assert isinstance(action, InputAction)
        assert action.text == "hi"
        assert action.widget.is_editable is True
        assert action.description == "Input: hi"

    def test_empty_input_ignored(self, mapper):
        """Test empty text is not recorded and is not an error."""
        assert mapper.map({"eventKind": "input", "sourceIdentity": "com.example.shop", "text": ""}, 0) is None

    def test_custom_introspector(self, click_event):
        widget = WidgetDescriptor(text="From introspector")
        mapper = EventMapper(introspector=Mock(return_value=widget))

        action = mapper.map(click_event, 0)

        assert action.widget == widget

    def test_failing_introspector_means_no_widget(self, click_event):
        mapper = EventMapper(introspector=Mock(side_effect=RuntimeError("node recycled")))

        action = mapper.map(click_event, 0)

        assert isinstance(action, ClickAction)
        assert action.widget is None


class TestScroll:
    """Test scroll mapping and direction derivation."""

    @pytest.mark.parametrize("sx,sy,mx,my,expected", [
        (0, 40, 0, 900, ScrollDirection.UP),
        (0, 0, 0, 900, ScrollDirection.DOWN),
        (30, 0, 500, 0, ScrollDirection.LEFT),
        (0, 0, 500, 0, ScrollDirection.RIGHT),
        (0, 0, 0, 0, ScrollDirection.UNKNOWN),
        (None, None, None, None, ScrollDirection.UNKNOWN),
    ])
    def test_derive_direction(self, sx, sy, mx, my, expected):
        assert derive_scroll_direction(sx, sy, mx, my) == expected

    def test_scroll_event(self, mapper):
        action = mapper.map({
            "eventKind": "view_scrolled",
            "sourceIdentity": "com.example.shop",
            "scrollX": 0,
            "scrollY": 40,
            "maxScrollX": 0,
            "maxScrollY": 900,
        }, 700)

        assert isinstance(action, ScrollAction)
        assert action.direction == ScrollDirection.UP
        assert action.scroll_y == 40
        assert action.max_scroll_y == 900

    def test_explicit_direction(self, mapper):
        action = mapper.map({"eventKind": "scroll", "sourceIdentity": "a.b", "scrollDirection": "LEFT"}, 0)

        assert action.direction == ScrollDirection.LEFT

    def test_invalid_direction(self, mapper):
        with pytest.raises(ValidationError):
            mapper.map({"eventKind": "scroll", "sourceIdentity": "a.b", "direction": "sideways"}, 0)


class TestOtherKinds:
    """Test app launch, swipe and wait mapping."""

    def test_app_launch_uses_label_resolver(self):
        mapper = EventMapper(label_resolver=lambda identity: "Shop")

        action = mapper.map({
            "eventKind": "window_state_changed",
            "sourceIdentity": "com.example.shop",
            "className": "com.example.shop.MainActivity",
        }, 0)

        assert isinstance(action, AppLaunchAction)
        assert action.target_identity == "com.example.shop"
        assert action.screen_label == "com.example.shop.MainActivity"
        assert action.description == "Launch app: Shop"

    def test_app_launch_without_resolver(self, mapper):
        action = mapper.map({"eventKind": "app_launch", "sourceIdentity": "com.example.shop"}, 0)

        assert action.description == "Launch app: com.example.shop"

    def test_swipe_from_gesture(self, mapper):
        action = mapper.map({
            "eventKind": "swipe",
            "sourceIdentity": "com.example.shop",
            "gesture": {"startX": 500, "startY": 1500, "endX": 500, "endY": 500, "duration": 250},
        }, 10)

        assert isinstance(action, SwipeAction)
        assert (action.start_x, action.start_y, action.end_x, action.end_y) == (500, 1500, 500, 500)
        assert action.duration_ms == 250

    def test_swipe_requires_start(self, mapper):
        with pytest.raises(ValidationError):
            mapper.map({"eventKind": "swipe", "sourceIdentity": "a.b", "endX": 1, "endY": 2}, 0)

    def test_wait(self, mapper):
        action = mapper.map({"eventKind": "wait", "sourceIdentity": "a.b", "waitDuration": 1500}, 10)

        assert isinstance(action, WaitAction)
        assert action.duration_ms == 1500
        assert action.description == "Wait 1500ms"

    def test_content_changed_ignored(self, mapper):
        assert mapper.map({"eventKind": "window_content_changed", "sourceIdentity": "a.b"}, 0) is None


class TestMalformedEvents:
    """Test malformed raw events raise ValidationError."""

    def test_unknown_kind(self, mapper):
        with pytest.raises(ValidationError):
            mapper.map({"eventKind": "key_event", "sourceIdentity": "a.b"}, 0)

    def test_missing_kind(self, mapper):
        with pytest.raises(ValidationError):
            mapper.map({"sourceIdentity": "a.b"}, 0)

    def test_not_a_mapping(self, mapper):
        with pytest.raises(ValidationError):
            mapper.map(["click"], 0)

    def test_non_numeric_field(self, mapper):
        with pytest.raises(ValidationError):
            mapper.map({"eventKind": "wait", "sourceIdentity": "a.b", "durationMs": "soon"}, 0)
