"""
Tolerant extraction of cross-cutting fields from edu service responses.

The edu service answers in several shapes depending on endpoint and
version: fields may sit at the top level or inside a ``result``/``data``
record, under camelCase or snake_case names, as numbers or as numeric
strings. Each field here has an ordered table of (path, guard) rules;
the first path that exists and passes its guard wins. Nothing in this
module raises: an unrecognized shape yields None.
"""
from __future__ import annotations

import math
from typing import Callable, Iterable

from quiz_session.models.results import RetryInfo, ScoreBreakdown

Guard = Callable[[object], object]
Rule = tuple[tuple[str, ...], Guard]

_MISSING = object()

# Where a field may live, in priority order.
LOCATIONS: tuple[tuple[str, ...], ...] = ((), ("result",), ("data",))

PASS_SCORE_MIN = 0
PASS_SCORE_MAX = 1000


# ---------------------------------------------------------------------------
# Guards: return the coerced value, or None when the raw value does not fit.
# ---------------------------------------------------------------------------

def as_number(value: object) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str) and value.strip():
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def as_int(value: object) -> int | None:
    number = as_number(value)
    if number is None or not number.is_integer():
        return None
    return int(number)


def as_count(value: object) -> int | None:
    number = as_int(value)
    return number if number is not None and number >= 0 else None


def as_ordinal(value: object) -> int | None:
    number = as_int(value)
    return number if number is not None and number >= 1 else None


def as_pass_score(value: object) -> float | None:
    number = as_number(value)
    if number is None or not PASS_SCORE_MIN <= number <= PASS_SCORE_MAX:
        return None
    return number


def as_bool(value: object) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return {1: True, 0: False}.get(value)
    if isinstance(value, str):
        return {"true": True, "false": False, "1": True, "0": False}.get(
            value.strip().lower()
        )
    return None


def as_text(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value
    return None


def as_id(value: object) -> str | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return str(value)
    return as_text(value)


# ---------------------------------------------------------------------------
# Rule tables
# ---------------------------------------------------------------------------

def build_rules(
    keys: Iterable[str],
    guard: Guard,
    locations: Iterable[tuple[str, ...]] = LOCATIONS,
) -> list[Rule]:
    """Location-major rule list: every key at the top level before any nested one."""
    keys = tuple(keys)
    return [((*location, key), guard) for location in locations for key in keys]


_RETRY_LOCATIONS = LOCATIONS + (("retryInfo",), ("retry_info",))

PASS_SCORE_RULES = build_rules(
    ("passScore", "pass_score", "passingScore", "passing_score", "minPassScore"),
    as_pass_score,
)
CAN_RETRY_RULES = build_rules(
    ("canRetry", "can_retry", "isRetryable", "retryable"), as_bool, _RETRY_LOCATIONS
)
REMAINING_ATTEMPTS_RULES = build_rules(
    ("remainingAttempts", "remaining_attempts", "left"), as_count, _RETRY_LOCATIONS
)
MAX_ATTEMPTS_RULES = build_rules(
    ("maxAttempts", "max_attempts"), as_count, _RETRY_LOCATIONS
)
USED_ATTEMPTS_RULES = build_rules(
    (
        "currentAttemptCount",
        "current_attempt_count",
        "usedAttempts",
        "used_attempts",
        "used",
        "attemptCount",
    ),
    as_count,
    _RETRY_LOCATIONS,
)
BEST_SCORE_RULES = build_rules(("bestScore", "best_score"), as_number, _RETRY_LOCATIONS)
ATTEMPT_NUMBER_RULES = build_rules(
    ("attemptNo", "attempt_no", "attemptNumber", "attempt_number"), as_ordinal
)
SCORE_RULES = build_rules(("score", "totalScore", "total_score"), as_number)
PASSED_RULES = build_rules(("passed", "isPassed", "is_passed"), as_bool)
CORRECT_RULES = build_rules(("correctCount", "correct_count"), as_count)
WRONG_RULES = build_rules(("wrongCount", "wrong_count"), as_count)
TOTAL_RULES = build_rules(("totalCount", "total_count", "questionCount"), as_count)
SUBMITTED_AT_RULES = build_rules(
    ("submittedAt", "submitted_at", "finishedAt", "finished_at"), as_text
)


def lookup(response: object, path: tuple[str, ...]) -> object:
    node = response
    for key in path:
        if not isinstance(node, dict) or key not in node:
            return _MISSING
        node = node[key]
    return node


def first_match(response: object, rules: Iterable[Rule]) -> object:
    """Evaluate rules top-to-bottom; the first structurally valid value wins."""
    for path, guard in rules:
        raw = lookup(response, path)
        if raw is _MISSING or raw is None:
            continue
        value = guard(raw)
        if value is not None:
            return value
    return None


# ---------------------------------------------------------------------------
# Field extractors
# ---------------------------------------------------------------------------

def extract_pass_score(response: object) -> float | None:
    return first_match(response, PASS_SCORE_RULES)


def extract_attempt_number(response: object) -> int | None:
    return first_match(response, ATTEMPT_NUMBER_RULES)


def extract_retry_info(response: object) -> RetryInfo | None:
    """Retry eligibility, or None when the response carries none of it."""
    remaining = first_match(response, REMAINING_ATTEMPTS_RULES)
    can_retry = first_match(response, CAN_RETRY_RULES)
    if can_retry is None and remaining is not None:
        can_retry = remaining > 0
    info = RetryInfo(
        can_retry=can_retry,
        remaining_attempts=remaining,
        max_attempts=first_match(response, MAX_ATTEMPTS_RULES),
        used_attempts=first_match(response, USED_ATTEMPTS_RULES),
        best_score=first_match(response, BEST_SCORE_RULES),
    )
    return info if info.is_known else None


def extract_score_breakdown(response: object) -> ScoreBreakdown:
    return ScoreBreakdown(
        score=first_match(response, SCORE_RULES),
        passed=first_match(response, PASSED_RULES),
        correct_count=first_match(response, CORRECT_RULES),
        wrong_count=first_match(response, WRONG_RULES),
        total_count=first_match(response, TOTAL_RULES),
        submitted_at=first_match(response, SUBMITTED_AT_RULES),
    )


# ---------------------------------------------------------------------------
# Envelope helpers
# ---------------------------------------------------------------------------

def unwrap_record(raw: object, keys: tuple[str, ...] = ("data", "result")) -> dict | None:
    """Merge the first nested record found under ``keys`` over the top level."""
    if not isinstance(raw, dict):
        return None
    for key in keys:
        inner = raw.get(key)
        if isinstance(inner, dict):
            return {**raw, **inner}
    return raw


def extract_list(raw: object, keys: Iterable[str]) -> list[dict] | None:
    """
    Find a list of records in a response.

    Accepts a bare list, a list under one of ``keys``, or the first list
    value of the (unwrapped) record. Non-record items are dropped.
    Returns None when no list is present at all.
    """
    node = unwrap_record(raw)
    if node is None:
        node = raw
    if isinstance(node, list):
        return [item for item in node if isinstance(item, dict)]
    if not isinstance(node, dict):
        return None
    for key in keys:
        value = node.get(key)
        if isinstance(value, list):
            return [item for item in value if isinstance(item, dict)]
    for value in node.values():
        if isinstance(value, list):
            return [item for item in value if isinstance(item, dict)]
    return None
