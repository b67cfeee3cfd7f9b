from fakes import FakeExecutor, FakeInspector, Screen, element
from vibeagent.domains.observe import ContextBuilder
from vibeagent.domains.observe.types import OcrReading
from vibeagent.domains.scroll import DynamicScroller, reverse_direction


def _page(*texts):
    return Screen(
        elements=tuple(
            element(i, text, bounds=(0, i * 100, 1080, i * 100 + 90)) for i, text in enumerate(texts)
        )
    )


def _scroller(screens, clock, **kwargs):
    inspector = FakeInspector(screens)
    executor = FakeExecutor(inspector, advancing={"scroll"})
    builder = ContextBuilder(inspector, clock=clock)
    scroller = DynamicScroller(builder, executor, sleep=clock.sleep, **kwargs)
    return scroller, executor


def test_reverse_direction():
    assert reverse_direction("up") == "down"
    assert reverse_direction("left") == "right"


def test_target_already_visible_does_not_scroll(clock):
    scroller, executor = _scroller([_page("Display", "Battery")], clock)

    result = scroller.scroll("down", "battery")

    assert result.found
    assert result.attempts == 0
    assert executor.calls == []


def test_scrolls_until_target_appears(clock):
    screens = [_page("Network"), _page("Display"), _page("About phone")]
    scroller, executor = _scroller(screens, clock, wait=1.5)

    result = scroller.scroll("down", "About phone")

    assert result.found
    assert result.attempts == 2
    assert not result.reversed
    assert executor.calls == [("scroll", "down"), ("scroll", "down")]
    assert clock.sleeps == [1.5, 1.5]
    assert result.context.contains_text("about phone")


def test_static_surface_reverses_once_and_terminates(clock):
    scroller, executor = _scroller([_page("Only row")], clock)

    result = scroller.scroll("down", "Missing", max_attempts=5, identical_threshold=2)

    assert not result.found
    assert result.reversed
    assert result.attempts <= 5
    directions = [call[1] for call in executor.calls]
    assert directions == ["down", "down", "up", "up"]


def test_budget_of_one_never_reverses(clock):
    scroller, executor = _scroller([_page("Only row")], clock)

    result = scroller.scroll("up", "Missing", max_attempts=1)

    assert not result.found
    assert not result.reversed
    assert executor.calls == [("scroll", "up")]


def test_fuzzy_ocr_match_counts_as_found(clock):
    web = Screen(elements=(), ocr=OcrReading(text="Enable dark mode here"))
    scroller, _ = _scroller([_page("Top"), web], clock)

    result = scroller.scroll("down", "enable dark mode toggle")

    assert result.found
    assert result.attempts == 1


def test_rejected_scroll_uses_an_attempt_and_keeps_going(clock):
    scroller, executor = _scroller([_page("Top"), _page("Next", "About phone")], clock)
    executor.fail("scroll")

    result = scroller.scroll("down", "About phone")

    assert result.found
    assert result.attempts == 2
    assert executor.calls == [("scroll", "down"), ("scroll", "down")]
    assert clock.sleeps == [1.5]


def test_every_scroll_rejected_ends_without_raising(clock):
    scroller, executor = _scroller([_page("Top"), _page("Next")], clock)
    executor.fail("scroll", times=10)

    result = scroller.scroll("down", "Missing", max_attempts=3)

    assert not result.found
    assert result.attempts <= 3
    assert executor.names() == ["scroll"] * result.attempts
