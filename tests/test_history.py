import pytest

from vibeagent.domains.run import (
    StepHistory,
    TaskStep,
    classify_interaction,
    extract_ui_context,
    validate_sequence,
)
from vibeagent.domains.run.history import (
    APP_LAUNCH,
    INPUT_FOCUS,
    NAVIGATION_SCROLL,
    SEARCH_INITIATION,
    SEARCH_QUERY_INPUT,
    TEXT_INPUT,
    UI_ELEMENT_CLICK,
)
from shared.errors import SequenceViolation


def _step(number, action, description="", task="", success=True, editable=False):
    step = TaskStep(step_number=number, action=action, description=description, success=success)
    step.interaction_type = classify_interaction(action, description, task, editable)
    step.ui_context = extract_ui_context(action, description, task)
    return step


def test_classify_interaction():
    assert classify_interaction("tap_element_by_text", "Tap search icon", "") == SEARCH_INITIATION
    assert classify_interaction("tap_element_by_index", "Tap field", "", True) == INPUT_FOCUS
    assert classify_interaction("type_text", "", "search for cats") == SEARCH_QUERY_INPUT
    assert classify_interaction("advanced_type_text", "", "write a note") == TEXT_INPUT
    assert classify_interaction("perform_tap", "Tap OK", "") == UI_ELEMENT_CLICK
    assert classify_interaction("perform_dynamic_scroll", "", "") == NAVIGATION_SCROLL
    assert classify_interaction("open_app_by_name", "", "") == APP_LAUNCH


def test_extract_ui_context_flags():
    flags = extract_ui_context("tap_element_by_index", "Tap the message field", "")

    assert flags == {
        "is_search_related": False,
        "is_input_interaction": True,
        "is_button_click": True,
    }


def test_bare_type_without_focus_is_rejected():
    history = [_step(1, "open_app_by_name", "Open Notes")]

    with pytest.raises(SequenceViolation):
        validate_sequence("type_text", {"text": "hello"}, "write hello in notes", history)
    with pytest.raises(SequenceViolation):
        validate_sequence("type_text", {"text": "hello"}, "write hello", [])


def test_type_after_focus_tap_is_allowed():
    history = [
        _step(1, "open_app_by_name", "Open Notes"),
        _step(2, "tap_element_by_index", "Tap body", editable=True),
    ]

    validate_sequence("type_text", {"text": "hello"}, "write hello in notes", history)


def test_focus_older_than_two_steps_does_not_count():
    history = [
        _step(1, "tap_element_by_index", "Tap body", editable=True),
        _step(2, "perform_scroll", ""),
        _step(3, "perform_back", ""),
    ]

    with pytest.raises(SequenceViolation):
        validate_sequence("type_text", {"text": "hi"}, "write hi", history)


def test_failed_focus_step_does_not_count():
    history = [_step(1, "tap_element_by_index", "Tap body", success=False, editable=True)]

    with pytest.raises(SequenceViolation):
        validate_sequence("type_text", {"text": "hi"}, "write hi", history)


def test_search_query_requires_search_initiation():
    task = "search for pizza in maps"
    focused_only = [_step(1, "tap_element_by_index", "Tap box", task=task, editable=True)]

    with pytest.raises(SequenceViolation):
        validate_sequence("type_text", {"text": "pizza"}, task, focused_only)

    searched = [_step(1, "tap_element_by_text", "Tap search bar", task=task)]
    validate_sequence("type_text", {"text": "pizza"}, task, searched)


def test_other_actions_are_never_rejected():
    validate_sequence("advanced_type_text", {"text": "x"}, "task", [])
    validate_sequence("perform_tap", {"x": 1, "y": 2}, "task", [])


def test_step_history_basics():
    history = StepHistory()
    assert history.last() is None

    history.append(_step(1, "perform_back"))
    history.append(_step(2, "perform_home"))

    assert len(history) == 2
    assert history.last().action == "perform_home"
    assert [s.step_number for s in history] == [1, 2]
    history.clear()
    assert history.steps == []


def test_task_step_to_dict_includes_notes():
    step = TaskStep(step_number=4, action="type_text", success=False, error="x", note="tap first")

    payload = step.to_dict()

    assert payload["step"] == 4
    assert payload["note"] == "tap first"
    assert payload["error"] == "x"
