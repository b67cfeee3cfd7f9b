import argparse
import json
import logging
from pathlib import Path

from infra.adb import AdbClient
from vibeagent.domains.decide.prompts.step import format_dialogs, format_elements, format_ocr
from vibeagent.domains.resolve import SOURCE_ACCESSIBILITY, SOURCE_OCR
from vibeagent.session import AutomationSession
from vibeagent.settings import load_settings
from shared.errors import AdbError, AgentError


def resolve_device_id(adb, device_id):
    if device_id:
        return device_id
    devices = adb.devices()
    if not devices:
        raise AdbError("no adb devices found")
    if len(devices) > 1:
        raise AdbError("multiple devices attached, pass --device")
    return devices[0]


def build_parser():
    parser = argparse.ArgumentParser(description="Closed-loop Android UI automation agent")
    parser.add_argument("--config", default=None, help="Path to config.json")
    parser.add_argument("--adb", dest="adb_path", default=None, help="Path to adb")
    parser.add_argument("--device", default=None, help="ADB device id")
    parser.add_argument(
        "--log-level", default=None, help="Logging level (default: LOG_LEVEL or INFO)"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser(
        "run", help="Run a task until the model reports completion"
    )
    run_parser.add_argument("--task", required=True, help="Natural-language task")
    run_parser.add_argument(
        "--output", default=None, help="Write the run result JSON to file"
    )
    run_parser.add_argument(
        "--model", default=None, help="LLM model (default: config)"
    )

    capture_parser = subparsers.add_parser(
        "capture", help="Print the screen context the model would see"
    )
    capture_parser.add_argument(
        "--ocr", action="store_true", help="Run OCR even when the tree looks complete"
    )

    tap_parser = subparsers.add_parser("tap-text", help="Resolve a text target and tap it")
    tap_parser.add_argument("--text", required=True, help="Text or label to tap")
    tap_parser.add_argument(
        "--ocr", action="store_true", help="Match against OCR blocks instead of the tree"
    )
    tap_parser.add_argument(
        "--dry-run", action="store_true", help="Only print the resolved point"
    )
    return parser


def _configure_logging(level_name):
    level = getattr(logging, str(level_name or "INFO").upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def format_context(context):
    lines = [
        "App: {}{}".format(
            context.current_app.package_name or "unknown",
            "/{}".format(context.current_app.activity) if context.current_app.activity else "",
        ),
    ]
    if context.error:
        lines.append("Capture degraded: {}".format(context.error))
    lines += [
        "Elements ({}):".format(len(context.elements)),
        format_elements(context.elements),
        "OCR:",
        format_ocr(context.ocr_text, context.ocr_blocks),
        "System dialogs:",
        format_dialogs(context.system_dialogs),
    ]
    return "\n".join(lines)


def main():
    parser = build_parser()
    args = parser.parse_args()

    try:
        settings = load_settings(args.config)
    except FileNotFoundError as exc:
        raise AgentError(str(exc)) from exc
    _configure_logging(args.log_level or settings.log_level)
    if args.command == "run" and args.model:
        settings.llm.model = args.model

    adb = AdbClient(
        adb_path=args.adb_path or settings.adb_path or "adb",
        device_id=args.device or settings.device_id or None,
        ime_id=settings.adb_ime_id,
    )
    adb.device_id = resolve_device_id(adb, adb.device_id)

    with AutomationSession.from_settings(settings, adb=adb) as session:
        if args.command == "run":
            result = session.run(args.task)
            output_text = json.dumps(result.to_dict(), indent=2, ensure_ascii=False)
            if args.output:
                Path(args.output).write_text(output_text, encoding="utf-8")
            print(output_text)
            return 0 if result.success else 1

        if args.command == "capture":
            print(format_context(session.builder.capture(force_ocr=args.ocr)))
            return 0

        if args.command == "tap-text":
            source = SOURCE_OCR if args.ocr else SOURCE_ACCESSIBILITY
            context = session.builder.capture(force_ocr=args.ocr)
            resolution = session.resolver.resolve_by_text(context, args.text, source)
            print(
                json.dumps(
                    {
                        "x": round(resolution.x),
                        "y": round(resolution.y),
                        "source": resolution.source,
                        "score": round(resolution.score, 3),
                    }
                )
            )
            if args.dry_run:
                return 0
            return 0 if session.executor.tap(resolution.x, resolution.y) else 1

    raise AgentError("unknown command")
