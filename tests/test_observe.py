from fakes import FakeInspector, Screen, element
from vibeagent.domains.observe import ContextBuilder, contexts_identical, looks_opaque
from vibeagent.domains.observe.types import OcrBlock, OcrReading
from shared.errors import InspectionFailure

SETTINGS_SCREEN = Screen(
    package="com.android.settings",
    elements=(
        element(0, "Network & internet", clickable=True),
        element(1, "Connected devices", bounds=(0, 60, 100, 110), clickable=True),
    ),
)


def test_complete_tree_never_runs_ocr(clock):
    inspector = FakeInspector([SETTINGS_SCREEN])
    context = ContextBuilder(inspector, clock=clock).capture()

    assert inspector.ocr_calls == 0
    assert inspector.screenshot_calls == 0
    assert context.ocr_text == ""
    assert not context.screenshot_available
    assert [e.text for e in context.elements] == ["Network & internet", "Connected devices"]
    assert context.current_app.package_name == "com.android.settings"


def test_empty_tree_falls_back_to_ocr(clock):
    reading = OcrReading(
        text=" Sign in \n",
        blocks=[OcrBlock("Sign in", (10, 10, 90, 40))],
        image_width=540,
        image_height=1200,
    )
    inspector = FakeInspector([Screen(elements=(), ocr=reading)])
    context = ContextBuilder(inspector, clock=clock).capture()

    assert inspector.ocr_calls == 1
    assert context.ocr_text == "Sign in"
    assert context.ocr_blocks[0].text == "Sign in"
    assert context.ocr_image_size == (540, 1200)
    assert context.screenshot_available


def test_webview_tree_also_runs_ocr(clock):
    screen = Screen(
        elements=(element(0, "", role="android.webkit.WebView", scrollable=True),),
        ocr=OcrReading(text="Checkout"),
    )
    inspector = FakeInspector([screen])
    context = ContextBuilder(inspector, clock=clock).capture()

    assert inspector.ocr_calls == 1
    assert context.ocr_text == "Checkout"
    assert len(context.elements) == 1


def test_no_screenshot_leaves_ocr_empty(clock):
    inspector = FakeInspector([Screen(elements=())], screenshot=None)
    context = ContextBuilder(inspector, clock=clock).capture()

    assert inspector.ocr_calls == 0
    assert context.ocr_text == ""
    assert not context.degraded


def test_ocr_failure_keeps_tree_context(clock):
    inspector = FakeInspector([Screen(elements=())])
    inspector.ocr_error = InspectionFailure("ocr server down")
    context = ContextBuilder(inspector, clock=clock).capture()

    assert context.ocr_text == ""
    assert context.screenshot_available
    assert not context.degraded


def test_inspector_failure_returns_degraded_context(clock):
    inspector = FakeInspector([SETTINGS_SCREEN])
    inspector.error = InspectionFailure("uiautomator dump failed")
    builder = ContextBuilder(inspector, clock=clock)
    context = builder.capture()

    assert context.degraded
    assert "uiautomator" in context.error
    assert context.elements == ()
    assert builder.latest is context


def test_system_dialogs_are_detected(clock):
    screen = Screen(
        elements=(
            element(0, "Allow Maps to access this device's location?"),
            element(1, "Search settings"),
        )
    )
    context = ContextBuilder(FakeInspector([screen]), clock=clock).capture()

    assert [d.dialog_type for d in context.system_dialogs] == ["permission_dialog"]


def test_looks_opaque_uses_class_hints():
    assert looks_opaque([element(0, role="androidx.compose.ui.platform.ComposeView")])
    assert not looks_opaque([element(0, role="android.widget.TextView")])
    assert looks_opaque([element(0, role="my.CustomCanvas")], hints=("customcanvas",))


def test_contexts_identical_window_and_depth(clock):
    inspector = FakeInspector([SETTINGS_SCREEN])
    builder = ContextBuilder(inspector, clock=clock)
    first = builder.capture()
    clock.sleep(1.0)
    second = builder.capture()

    assert contexts_identical(first, second)
    assert not contexts_identical(None, second)

    clock.sleep(3.0)
    third = builder.capture()
    assert not contexts_identical(second, third)

    changed = Screen(
        package="com.android.settings",
        elements=(
            element(0, "Network & internet", clickable=True),
            element(1, "Apps", bounds=(0, 60, 100, 110), clickable=True),
        ),
    )
    inspector.screens.append(changed)
    inspector.advance()
    fourth = builder.capture()
    assert not contexts_identical(third, fourth)
    assert contexts_identical(third, fourth, depth=1)


def test_contexts_identical_ignores_degraded(clock):
    inspector = FakeInspector([SETTINGS_SCREEN])
    builder = ContextBuilder(inspector, clock=clock)
    good = builder.capture()
    inspector.error = InspectionFailure("boom")
    bad = builder.capture()

    assert not contexts_identical(good, bad)
    assert not contexts_identical(bad, bad)


def test_snapshot_and_contains_text(clock):
    context = ContextBuilder(FakeInspector([SETTINGS_SCREEN]), clock=clock).capture()

    assert context.snapshot().startswith("Network & internet|\nConnected devices|")
    assert context.contains_text("connected")
    assert not context.contains_text("Bluetooth")
    assert context.screen_extent() == (100.0, 110.0)


def test_unexpected_inspector_error_returns_degraded_context(clock):
    inspector = FakeInspector([SETTINGS_SCREEN])
    inspector.error = RuntimeError("binder died")
    builder = ContextBuilder(inspector, clock=clock)

    context = builder.capture()

    assert context.degraded
    assert "RuntimeError" in context.error
    assert builder.latest is context


def test_unexpected_ocr_error_keeps_tree_context(clock):
    inspector = FakeInspector([Screen(elements=())])
    inspector.ocr_error = ValueError("invalid literal for int() with base 10: 'n/a'")

    context = ContextBuilder(inspector, clock=clock).capture()

    assert not context.degraded
    assert context.ocr_text == ""
    assert context.ocr_blocks == ()
