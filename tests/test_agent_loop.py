import pytest

from fakes import FakeExecutor, FakeInspector, Screen, ScriptedOracle, element
from vibeagent.agent import AutomationLoop, LoopConfig, LoopState
from vibeagent.agent.runtime import TARGET_NOT_FOUND_NOTE
from vibeagent.domains.act import ActionDispatcher, InputFocuser, ProcessedFieldSet
from vibeagent.domains.decide import DecisionOracleClient
from vibeagent.domains.observe import ContextBuilder
from vibeagent.domains.resolve import TargetResolver
from vibeagent.domains.scroll import DynamicScroller
from vibeagent.events import EVENT_COMPLETE, EVENT_STEP, EventBuffer
from shared.errors import AgentError, AutomationBusy

LAUNCHER = Screen(
    package="com.android.launcher",
    elements=(element(0, "Settings"), element(1, "Camera", bounds=(100, 0, 200, 50))),
)
SETTINGS = Screen(
    package="com.android.settings",
    elements=(
        element(0, "Settings", bounds=(0, 0, 1080, 100)),
        element(1, "Network & internet", bounds=(0, 100, 1080, 200)),
        element(2, "Connected devices", bounds=(0, 200, 1080, 300)),
        element(3, "Wi-Fi", bounds=(0, 300, 1080, 400), role="android.widget.Switch", clickable=True),
    ),
)

OPEN_SETTINGS = (
    '{"action": "open_app_by_name", "parameters": {"appName": "Settings"}, '
    '"description": "Open Settings"}'
)
TAP_WIFI = (
    '{"action": "tap_element_by_index", "parameters": {"index": 3}, '
    '"description": "Tap Wi-Fi toggle"}'
)
DONE = '{"isComplete": true, "description": "Wi-Fi enabled"}'


class Harness:
    def __init__(self, clock, screens, responses, advancing=(), oracle=None):
        self.clock = clock
        self.inspector = FakeInspector(screens)
        self.executor = FakeExecutor(self.inspector, advancing)
        self.builder = ContextBuilder(self.inspector, clock=clock)
        self.fields = ProcessedFieldSet()
        resolver = TargetResolver()
        focuser = InputFocuser(self.executor, resolver, self.fields, sleep=clock.sleep)
        scroller = DynamicScroller(self.builder, self.executor, sleep=clock.sleep)
        self.dispatcher = ActionDispatcher(self.executor, resolver, scroller, focuser)
        self.oracle = oracle or ScriptedOracle(list(responses))
        self.client = DecisionOracleClient(self.oracle, clock=clock, sleep=clock.sleep)
        self.events = EventBuffer()
        self.loop = AutomationLoop(
            self.builder,
            self.client,
            self.dispatcher,
            self.fields,
            config=LoopConfig(),
            sink=self.events,
            sleep=clock.sleep,
        )

    def kinds(self):
        return [event.kind for event in self.events.poll()]


def test_open_settings_and_enable_wifi(clock):
    harness = Harness(clock, [LAUNCHER, SETTINGS], [OPEN_SETTINGS, TAP_WIFI, DONE], {"open_app_by_name"})
    finished = []
    harness.loop.add_listener(lambda result: finished.append((result, harness.loop.state)))

    result = harness.loop.run("open settings and enable wifi")

    assert result.state == LoopState.COMPLETED
    assert result.success
    assert harness.executor.calls == [
        ("open_app_by_name", "Settings"),
        ("tap", 540.0, 350.0),
    ]
    assert [step.action for step in result.steps] == [
        "open_app_by_name",
        "tap_element_by_index",
        "complete",
    ]
    assert all(step.success for step in result.steps)
    assert harness.loop.step_number == 3
    assert harness.loop.state == LoopState.IDLE
    assert finished == [(result, LoopState.IDLE)]
    assert harness.kinds()[-1] == EVENT_COMPLETE
    assert harness.kinds().count(EVENT_STEP) == 3
    assert '[3] Switch text="Wi-Fi"' in harness.oracle.prompts[1]


def test_unchanged_screen_waits_without_calling_oracle(clock):
    harness = Harness(clock, [LAUNCHER, SETTINGS], [OPEN_SETTINGS, TAP_WIFI, DONE], {"open_app_by_name"})

    harness.loop.run("enable wifi")

    # the settings screen is identical after the tap, so the loop waits until the window passes
    assert clock.sleeps.count(2.0) == 2
    assert len(harness.oracle.prompts) == 3


def test_empty_task_is_rejected(clock):
    harness = Harness(clock, [LAUNCHER], [DONE])

    with pytest.raises(AgentError):
        harness.loop.run("   ")
    assert harness.loop.state == LoopState.IDLE


def test_second_task_while_running_is_busy(clock):
    outcome = {}

    class ReentrantOracle:
        prompts = []

        def generate(self, prompt):
            with pytest.raises(AutomationBusy):
                harness.loop.run("another task")
            outcome["busy"] = harness.loop.state
            return DONE

    harness = Harness(clock, [LAUNCHER], [], oracle=ReentrantOracle())

    result = harness.loop.run("first task")

    assert outcome["busy"] == LoopState.RUNNING
    assert result.success


def test_oracle_failure_fails_the_run(clock):
    harness = Harness(clock, [LAUNCHER], [])
    listener = []
    harness.loop.add_listener(listener.append)

    result = harness.loop.run("open settings")

    assert result.state == LoopState.FAILED
    assert not result.success
    assert "oracle request failed" in result.error
    assert result.steps[-1].action == "decide"
    assert not result.steps[-1].success
    assert listener == [result]
    assert harness.loop.state == LoopState.IDLE


def test_missing_target_is_recorded_and_loop_continues(clock):
    missing = (
        '{"action": "tap_element_by_text", "parameters": {"text": "Bluetooth"}, '
        '"description": "Tap Bluetooth"}'
    )
    harness = Harness(clock, [SETTINGS], [missing, DONE])

    result = harness.loop.run("turn on bluetooth")

    assert result.state == LoopState.COMPLETED
    failed = result.steps[0]
    assert not failed.success
    assert failed.note == TARGET_NOT_FOUND_NOTE
    assert "NOTE: {}".format(TARGET_NOT_FOUND_NOTE) in harness.oracle.prompts[1]
    assert harness.executor.calls == []


def test_bare_typing_is_rejected_with_a_note(clock):
    typing = '{"action": "type_text", "parameters": {"text": "hello"}, "description": "Type hello"}'
    harness = Harness(clock, [SETTINGS], [typing, DONE])

    result = harness.loop.run("write hello")

    assert result.success
    assert not result.steps[0].success
    assert result.steps[0].note
    assert harness.executor.calls == []


def test_executor_rejection_fails_the_run(clock):
    harness = Harness(clock, [LAUNCHER], [OPEN_SETTINGS, DONE])
    harness.executor.fail("open_app_by_name")

    result = harness.loop.run("open settings")

    assert result.state == LoopState.FAILED
    assert "executor rejected open_app_by_name" in result.error
    assert not result.steps[-1].success
    assert len(harness.oracle.prompts) == 1


def test_stop_cancels_at_next_iteration(clock):
    back = '{"action": "perform_back", "parameters": {}, "description": "Go back"}'
    stopped = {}

    class StoppingOracle:
        prompts = []

        def generate(self, prompt):
            stopped["accepted"] = harness.loop.stop()
            return back

    harness = Harness(clock, [LAUNCHER], [], oracle=StoppingOracle())

    result = harness.loop.run("go back")

    assert stopped["accepted"]
    assert result.state == LoopState.CANCELLED
    assert harness.executor.calls == [("back",)]
    assert not harness.loop.stop()


def test_completion_with_action_does_not_execute_it(clock):
    final = '{"action": "perform_back", "parameters": {}, "isComplete": true}'
    harness = Harness(clock, [LAUNCHER], [final])

    result = harness.loop.run("close the dialog")

    assert result.success
    assert harness.executor.calls == []
    assert result.steps[0].action == "perform_back"
    assert "not executed" in result.steps[0].note


def test_scroll_forces_fresh_decision_after_settling(clock):
    scroll = '{"action": "perform_scroll", "parameters": {"direction": "down"}}'
    harness = Harness(clock, [SETTINGS], [scroll, DONE])

    result = harness.loop.run("find about phone")

    assert result.success
    assert 4.0 in clock.sleeps
    assert 2.0 not in clock.sleeps
    assert harness.executor.calls == [("scroll", "down")]


def test_failed_capture_still_asks_the_oracle(clock):
    harness = Harness(clock, [LAUNCHER], [DONE])
    harness.inspector.error = AgentError("device offline")

    result = harness.loop.run("open settings")

    assert result.success
    assert "Capture: degraded (device offline)" in harness.oracle.prompts[0]


def test_loop_config_from_settings():
    class Section:
        unchanged_depth = 3
        unchanged_window = 1.5
        action_wait = 0.2
        scroll_wait = 1.0
        unchanged_wait = 0.5
        history_window = 4

    config = LoopConfig.from_settings(Section())

    assert config.unchanged_depth == 3
    assert config.history_window == 4


def test_unexpected_oracle_error_fails_with_decide_step(clock):
    harness = Harness(clock, [LAUNCHER], [ValueError("Expecting value: line 1 column 1")])

    result = harness.loop.run("open settings")

    assert result.state == LoopState.FAILED
    assert "ValueError" in result.error
    assert result.steps[-1].action == "decide"
    assert not result.steps[-1].success
    assert harness.loop.state == LoopState.IDLE


NOTE_EDITOR = Screen(
    package="com.example.notes",
    activity=".EditorActivity",
    elements=(
        element(0, "Title", bounds=(0, 0, 1080, 100)),
        element(1, "", label="Body", bounds=(40, 300, 1040, 400), editable=True),
    ),
)
NOTE_SEARCH = Screen(
    package="com.example.notes",
    activity=".SearchActivity",
    elements=NOTE_EDITOR.elements + (element(2, "Recent", bounds=(0, 500, 1080, 600)),),
)
TAP_BODY = (
    '{"action": "tap_element_by_index", "parameters": {"index": 1}, '
    '"description": "Tap body field"}'
)


class FieldWatchingOracle:
    """Replays scripted responses and notes how many focused fields the loop remembers."""

    def __init__(self, responses, on_call=None):
        self.scripted = ScriptedOracle(list(responses))
        self.prompts = self.scripted.prompts
        self.field_counts = []
        self.on_call = on_call
        self.harness = None

    def generate(self, prompt):
        self.field_counts.append(len(self.harness.fields))
        if self.on_call is not None:
            self.on_call(len(self.field_counts), self.harness)
        return self.scripted.generate(prompt)


def test_activity_change_forgets_focused_fields(clock):
    typing = '{"action": "type_text", "parameters": {"text": "hello"}, "description": "Type hello"}'
    oracle = FieldWatchingOracle([TAP_BODY, typing, DONE])
    harness = Harness(clock, [NOTE_EDITOR, NOTE_SEARCH], [], advancing={"tap"}, oracle=oracle)
    oracle.harness = harness
    harness.executor.fail("type_text")

    result = harness.loop.run("write hello in notes")

    assert result.success
    assert oracle.field_counts == [0, 0, 1]
    assert harness.executor.calls == [
        ("tap", 540.0, 350.0),
        ("type_text", "hello", False, 0),
        ("tap", 540.0, 350.0),
        ("type_text", "hello", False, 0),
    ]
    assert result.steps[1].note == "input refocused via a11y_1"


def test_degraded_capture_forgets_focused_fields(clock):
    back = '{"action": "perform_back", "parameters": {}, "description": "Go back"}'

    def break_device(call, harness):
        if call == 2:
            harness.inspector.error = AgentError("device offline")

    oracle = FieldWatchingOracle([TAP_BODY, back, DONE], on_call=break_device)
    harness = Harness(clock, [NOTE_EDITOR], [], oracle=oracle)
    oracle.harness = harness

    result = harness.loop.run("tidy the note")

    assert result.success
    assert oracle.field_counts == [0, 1, 0]
