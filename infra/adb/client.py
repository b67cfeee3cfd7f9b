import base64
import logging
import re
import subprocess

from shared.errors import AdbError
from shared.text import is_ascii


UI_DUMP_PATH = "/sdcard/uidump.xml"
FOCUS_RE = re.compile(r"mCurrentFocus=Window\{[^}]*\s([\w.]+)/([\w.$]+)\}")
FOCUSED_APP_RE = re.compile(r"mFocusedApp=.*?\s([\w.]+)/([\w.$]+)")
SIZE_RE = re.compile(r"(\d+)x(\d+)")
CLIPBOARD_PASTE_KEYCODE = 279

logger = logging.getLogger("vibeagent.device")


def adb_text_escape(text):
    escaped = []
    for ch in text:
        if ch == " ":
            escaped.append("%s")
        elif ch in "\\'\"&|<>;()$`":
            escaped.append("\\" + ch)
        else:
            escaped.append(ch)
    return "".join(escaped)


def extract_hierarchy(xml_text):
    if not xml_text:
        return None
    xml_text = xml_text.replace("\x00", "")
    match = re.search(r"<hierarchy[^>]*>.*</hierarchy>", xml_text, re.DOTALL)
    if not match:
        return None
    return match.group(0).strip()


class AdbClient:
    def __init__(self, adb_path="adb", device_id=None, ime_id=None, timeout=30):
        self.adb_path = adb_path
        self.device_id = device_id or None
        self.ime_id = ime_id or None
        self.timeout = timeout

    def _base_cmd(self):
        cmd = [self.adb_path]
        if self.device_id:
            cmd += ["-s", self.device_id]
        return cmd

    def run(self, args, timeout=None, check=True, text=True):
        cmd = self._base_cmd() + list(args)
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                timeout=timeout or self.timeout,
                text=text,
            )
        except FileNotFoundError as exc:
            raise AdbError("adb executable not found: {}".format(self.adb_path)) from exc
        except subprocess.TimeoutExpired as exc:
            raise AdbError("adb timed out: {}".format(" ".join(cmd))) from exc
        if check and result.returncode != 0:
            stderr = result.stderr
            if isinstance(stderr, bytes):
                stderr = stderr.decode("utf-8", errors="replace")
            raise AdbError(
                "adb failed: {}\n{}".format(" ".join(cmd), (stderr or "").strip())
            )
        return result

    def devices(self):
        output = self.run(["devices"], timeout=10).stdout.splitlines()
        found = []
        for line in output[1:]:
            parts = line.split()
            if len(parts) >= 2 and parts[1] == "device":
                found.append(parts[0])
        return found

    def shell(self, cmd, timeout=None, check=True):
        if isinstance(cmd, str):
            args = ["shell", cmd]
        else:
            args = ["shell"] + list(cmd)
        return self.run(args, timeout=timeout, check=check)

    def exec_out(self, cmd, timeout=None):
        if isinstance(cmd, str):
            args = ["exec-out", cmd]
        else:
            args = ["exec-out"] + list(cmd)
        return self.run(args, timeout=timeout, check=True, text=False)

    def tap(self, x, y):
        self.shell(["input", "tap", str(int(x)), str(int(y))])

    def swipe(self, x1, y1, x2, y2, duration_ms=300):
        self.shell(
            [
                "input",
                "swipe",
                str(int(x1)),
                str(int(y1)),
                str(int(x2)),
                str(int(y2)),
                str(int(duration_ms)),
            ]
        )

    def long_press(self, x, y, duration_ms=800):
        self.swipe(x, y, x, y, duration_ms=duration_ms)

    def keyevent(self, keycode):
        self.shell(["input", "keyevent", str(keycode)])

    def delete_chars(self, count, keycode=67):
        if count <= 0:
            return
        self.shell(["input", "keyevent"] + [str(keycode)] * int(count))

    def screen_size(self):
        output = self.shell(["wm", "size"]).stdout or ""
        override = re.search(r"Override size:\s*(\d+)x(\d+)", output)
        match = override or SIZE_RE.search(output)
        if not match:
            raise AdbError("unable to read screen size: {}".format(output.strip()))
        return int(match.group(1)), int(match.group(2))

    def current_focus(self):
        """Return (package, activity) of the focused window, or (None, None)."""
        output = self.shell(["dumpsys", "window"], check=False).stdout or ""
        for pattern in (FOCUS_RE, FOCUSED_APP_RE):
            match = pattern.search(output)
            if match:
                return match.group(1), match.group(2)
        return None, None

    def list_packages(self):
        output = self.shell(["pm", "list", "packages"]).stdout or ""
        packages = []
        for line in output.splitlines():
            line = line.strip()
            if line.startswith("package:"):
                packages.append(line[len("package:"):])
        return packages

    def _input_text_via_ime(self, text):
        self.shell(["ime", "enable", self.ime_id])
        self.shell(["ime", "set", self.ime_id])
        encoded = base64.b64encode(text.encode("utf-8")).decode("ascii")
        self.shell(["am", "broadcast", "-a", "ADB_INPUT_B64", "--es", "msg", encoded])

    def input_text(self, text):
        if text is None:
            return
        text = str(text)
        if not text:
            return
        if is_ascii(text):
            self.shell(["input", "text", adb_text_escape(text)])
            return
        if self.ime_id:
            try:
                self._input_text_via_ime(text)
                return
            except AdbError as exc:
                logger.warning("ime input failed, falling back to clipboard: %s", exc)
        try:
            self.shell(["cmd", "clipboard", "set", text])
            self.keyevent(CLIPBOARD_PASTE_KEYCODE)
        except AdbError as exc:
            raise AdbError(
                "failed to input non-ASCII text; enable clipboard or configure "
                "VIBE_ADB_IME_ID for an ADB keyboard IME on the device"
            ) from exc

    def start_app(self, package, activity=None):
        if activity:
            self.shell(["am", "start", "-n", "{}/{}".format(package, activity)])
            return
        self.shell(
            [
                "monkey",
                "-p",
                package,
                "-c",
                "android.intent.category.LAUNCHER",
                "1",
            ]
        )

    def screenshot_bytes(self):
        return self.exec_out(["screencap", "-p"]).stdout

    def _dump_ui_direct(self):
        candidates = [
            ["uiautomator", "dump", "--compressed", "/dev/tty"],
            ["uiautomator", "dump", "/dev/tty"],
        ]
        for args in candidates:
            try:
                result = self.exec_out(args)
            except AdbError:
                continue
            extracted = extract_hierarchy(result.stdout.decode("utf-8", errors="replace"))
            if extracted:
                return extracted
        return None

    def dump_ui(self):
        xml_text = self._dump_ui_direct()
        if xml_text:
            return xml_text
        self.shell(["uiautomator", "dump", UI_DUMP_PATH])
        result = self.exec_out(["cat", UI_DUMP_PATH])
        extracted = extract_hierarchy(result.stdout.decode("utf-8", errors="replace"))
        if not extracted:
            raise AdbError("failed to extract UI hierarchy")
        return extracted
