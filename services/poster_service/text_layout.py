import re
from typing import Iterator

# Code points of the Han script (radicals, ideographs, extensions, compatibility ideographs)
_HAN_RE = re.compile(
    "["
    "\u2e80-\u2e99\u2e9b-\u2ef3\u2f00-\u2fd5"
    "\u3005\u3007\u3021-\u3029\u3038-\u303b"
    "\u3400-\u4dbf\u4e00-\u9fff"
    "\uf900-\ufa6d\ufa70-\ufad9"
    "\U00016fe2\U00016fe3\U00016ff0-\U00016ff1"
    "\U00020000-\U0002a6df\U0002a700-\U0002ebe0"
    "\U0002f800-\U0002fa1d\U00030000-\U000323af"
    "]"
)


def is_han(ch: str) -> bool:
    return _HAN_RE.match(ch) is not None


def char_width(ch: str) -> int:
    """Han characters occupy two width units, everything else one."""
    return 2 if is_han(ch) else 1


def wrap(content: str, line_budget: int) -> Iterator[str]:
    """Split content into display lines of roughly line_budget width units.

    The running width is reset to 0 when it exceeds the budget, and the
    character that overflowed starts the next line without being counted.
    When the very first character already overflows it keeps a line to
    itself. Existing layouts depend on both boundaries, so keep them as is.
    """
    line_no = 0  # bumped on every overflow
    started = 0  # lines begun so far
    count = 0
    current = ""
    for ch in content or "":
        count += char_width(ch)
        if count > line_budget:
            line_no += 1
            count = 0
        if started <= line_no:
            if current:
                yield current
            current = ch
            started += 1
        else:
            current += ch
    if current:
        yield current
