import re
from html import unescape
from math import ceil

WORDS_PER_MINUTE = 200

_TAG_RE = re.compile(r"<[^>]+>")


def calculate_read_time(content: str, wpm: int = WORDS_PER_MINUTE) -> int:
    """Minutes needed to read ``content`` (rich-text HTML allowed), at least 1."""
    if not content:
        return 1
    text = unescape(_TAG_RE.sub(" ", content))
    words = re.findall(r"\S+", text)
    return max(1, ceil(len(words) / max(wpm, 1)))
