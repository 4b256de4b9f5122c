"""Rule ID generation and validation.

Format: ``rule_{epoch millis}_{9 base36 chars}``. The random suffix keeps
IDs unique when several rules are created within the same millisecond.

INVARIANT: IDs are permanent. Once generated, an ID never changes.
"""

from __future__ import annotations

import re
import secrets
import time

RULE_ID_PREFIX = "rule_"
RULE_ID_PATTERN = re.compile(r"^rule_\d+_[0-9a-z]{9}$")

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"
_SUFFIX_LENGTH = 9


def generate_rule_id(now_ms: int | None = None) -> str:
    """Generate a fresh rule ID.

    Args:
        now_ms: Override the timestamp component (tests).
    """
    millis = now_ms if now_ms is not None else time.time_ns() // 1_000_000
    suffix = "".join(secrets.choice(_BASE36) for _ in range(_SUFFIX_LENGTH))
    return f"{RULE_ID_PREFIX}{millis}_{suffix}"


def is_generated_rule_id(rule_id: str) -> bool:
    """Check whether *rule_id* has the shape produced by :func:`generate_rule_id`.

    Imported rules may carry any non-empty ID; this only recognises ours.
    """
    return RULE_ID_PATTERN.match(rule_id) is not None
