"""
Conversions between human entered size strings and kilobyte counts.

Sizes flow through the system as kilobytes because that is the unit the
quota tools report in. Two deliberately different readers exist:

* ``to_kilobytes`` is used for ordering. Anything it cannot understand is
  mapped to ``SORT_LAST`` so that garbage never floats to the top.
* ``from_kilobytes`` is used for display. Anything it cannot understand is
  returned untouched so that a raw diagnostic is never hidden.
"""
import math
import re
import sys
from typing import Iterable, List, Optional, Union

from shareden.shares.errors import ShareValidationError
from shareden.shares.models import Share

SORT_LAST = sys.maxsize
UNKNOWN = "N/A"

UNIT_MULTIPLIERS = {
    "K": 1,
    "M": 1024,
    "G": 1024 ** 2,
    "T": 1024 ** 3,
    "P": 1024 ** 4,
}
DISPLAY_UNITS = ["KB", "MB", "GB", "TB", "PB", "EB", "ZB", "YB"]

_SIZE_RE = re.compile(r"^(\d+(?:\.\d+)?)\s*([KMGTP])?B?$")
_QUOTA_RE = re.compile(r"^(\d+)\s*([KMGTP])?B?$", re.IGNORECASE)
# Leading integer, as xfs_quota or a hand edited value may carry a fraction or suffix
_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")

SORTABLE_KEYS = ("name", "path", "quota", "used")


def to_kilobytes(size_text: Optional[str]) -> int:
    """Parse ``size_text`` into kilobytes, or ``SORT_LAST`` when it has no usable value.

    A bare number is taken to be kilobytes.
    """
    if not size_text or not isinstance(size_text, str):
        return SORT_LAST

    s = size_text.strip().upper()
    if s in ("", "NONE", "N/A"):
        return SORT_LAST

    match = _SIZE_RE.match(s)
    if not match:
        return SORT_LAST

    value = float(match.group(1))
    if value == 0:
        return 0

    multiplier = UNIT_MULTIPLIERS.get(match.group(2) or "K")
    return int(value * multiplier)


def from_kilobytes(kb_text: Union[int, str, None]) -> str:
    """Render a kilobyte count as e.g. ``"512 KB"`` or ``"1.5 GB"``."""
    if kb_text is None or kb_text == "":
        return UNKNOWN
    if isinstance(kb_text, int):
        kb = kb_text
    else:
        match = _LEADING_INT_RE.match(str(kb_text))
        if not match:
            return str(kb_text)
        kb = int(match.group(1))

    if kb < 0:
        return UNKNOWN
    if kb == 0:
        return "0 KB"

    i = min(int(math.floor(math.log(kb) / math.log(1024))), len(DISPLAY_UNITS) - 1)
    # Exact integer arithmetic guards the tier boundaries against float error
    while i > 0 and kb < 1024 ** i:
        i -= 1
    while i < len(DISPLAY_UNITS) - 1 and kb >= 1024 ** (i + 1):
        i += 1

    if i == 0:
        return f"{kb} {DISPLAY_UNITS[0]}"
    return f"{kb / 1024 ** i:.1f} {DISPLAY_UNITS[i]}"


def normalize_quota(quota: Optional[str]) -> str:
    """Validate a quota entered by the operator and return its stored form.

    Empty means "no quota". Anything else must be a positive integer with an
    optional K/M/G/T/P unit and optional trailing B, e.g. ``100KB``,
    ``500MB``, ``1G`` or ``2TB``.
    """
    if quota is None:
        return ""
    value = quota.strip().upper()
    if not value:
        return ""

    match = _QUOTA_RE.match(value)
    if not match:
        raise ShareValidationError({
            "quota": "Invalid format. Use positive integer + unit (e.g., 100KB, 500MB, 1G, 2TB)."
        })
    if int(match.group(1)) <= 0:
        raise ShareValidationError({"quota": "Quota must be a positive integer."})

    return f"{int(match.group(1))}{value[match.end(1):].strip()}"


def quota_to_kilobytes(quota: str) -> int:
    """Exact kilobyte count of a quota already accepted by ``normalize_quota``."""
    match = _QUOTA_RE.match(quota.strip())
    if not match:
        raise ValueError(f"Not a canonical quota: {quota!r}")
    return int(match.group(1)) * UNIT_MULTIPLIERS[(match.group(2) or "K").upper()]


def _natural_key(value: Optional[str]):
    parts = re.split(r"(\d+)", (value or "").casefold())
    return [(0, int(part), "") if part.isdigit() else (1, 0, part) for part in parts]


def sort_shares(shares: Iterable[Share], key: str = "name", descending: bool = False) -> List[Share]:
    """Order shares the way the share table does.

    ``quota`` and ``used`` compare by size, so shares without a value sort
    last in ascending order. ``name`` and ``path`` compare case-insensitively
    with embedded numbers compared by value (``share2`` before ``share10``).
    """
    if key not in SORTABLE_KEYS:
        raise ShareValidationError({"sort": f"Cannot sort by '{key}'. Use one of: {', '.join(SORTABLE_KEYS)}."})

    if key in ("quota", "used"):
        sort_key = lambda share: to_kilobytes(getattr(share, key))
    else:
        sort_key = lambda share: _natural_key(getattr(share, key))

    return sorted(shares, key=sort_key, reverse=descending)
