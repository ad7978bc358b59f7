"""Version string ordering.

Versions are split into segments on ".", "-", "_" and "+". Each segment is
split further into runs of digits and non-digits ("rc10" -> "rc", 10).
Numeric runs compare numerically, text runs lexically, and a numeric run
sorts after a text run so that "1.0.0-rc1" < "1.0.0". The shorter version
is padded with "0" segments, making "1.0" equal to "1.0.0".
"""

from __future__ import annotations

import re

_SEGMENT_SEPARATORS = re.compile(r"[.\-_+]")
_RUNS = re.compile(r"\d+|\D+")

# (rank, value) - text runs rank below numeric runs
_Run = tuple[int, int | str]
_Segment = tuple[_Run, ...]

_ZERO_SEGMENT: _Segment = ((1, 0),)


def _parse_segment(segment: str) -> _Segment:
    runs: list[_Run] = []
    for run in _RUNS.findall(segment):
        if run.isdigit():
            runs.append((1, int(run)))
        else:
            runs.append((0, run))
    return tuple(runs) or _ZERO_SEGMENT


def version_key(version: str) -> tuple[_Segment, ...]:
    """Split a version string into comparable segments."""
    return tuple(_parse_segment(s) for s in _SEGMENT_SEPARATORS.split(version))


def _compare_present(a: str, b: str) -> int:
    key_a = version_key(a)
    key_b = version_key(b)
    width = max(len(key_a), len(key_b))
    key_a += (_ZERO_SEGMENT,) * (width - len(key_a))
    key_b += (_ZERO_SEGMENT,) * (width - len(key_b))
    if key_a == key_b:
        return 0
    return 1 if key_a > key_b else -1


def compare_versions(a: str | None, b: str | None) -> int:
    """Compare two optional version strings.

    A version always wins over a missing one; two missing versions tie.
    Empty strings count as missing.

    Returns:
        -1, 0 or 1.
    """
    if a and b:
        return _compare_present(a, b)
    if a:
        return 1
    if b:
        return -1
    return 0
