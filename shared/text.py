import re

_SPACE_RE = re.compile(r"\s+")


def is_ascii(text):
    try:
        text.encode("ascii")
    except UnicodeEncodeError:
        return False
    return True


def normalize_text(value):
    if value is None:
        return ""
    return _SPACE_RE.sub(" ", str(value).lower()).strip()
