from __future__ import annotations

import re

from requirements_planner.core.model import Priority


# Keyword classifiers only. High-priority words win over low-priority ones.

_HIGH_PRIORITY = re.compile(
    r"\b(?:critical|urgent|must|important|essential|high[- ]priority|asap|blocker)\b",
    re.IGNORECASE,
)
_LOW_PRIORITY = re.compile(
    r"\b(?:optional|nice[- ]to[- ]have|low[- ]priority|could have|if time permits)\b",
    re.IGNORECASE,
)

DEFAULT_EFFORT_HOURS: float = 4.0

_HOURS_PER_UNIT: dict[str, float] = {"h": 1.0, "d": 8.0, "w": 40.0}

# Spelled-out units may be spaced from the number; "h" and "w" must touch it, lowercase.
# There is no bare "d", so "3D viewer" is not a duration.
_EFFORT = re.compile(
    r"(?<![\w.])(\d+(?:\.\d+)?)(?:\s*(hours?|hrs?|days?|weeks?|wks?)|(?-i:([hw])))\b",
    re.IGNORECASE,
)

_TAG_RULES: list[tuple[str, re.Pattern[str]]] = [
    (tag, re.compile(rf"\b(?:{words})", re.IGNORECASE))
    for tag, words in [
        ("frontend", r"react|frontend|ui\b|ux\b|component"),
        ("backend", r"api\b|backend|server|service|controller"),
        ("database", r"database|data\b|schema|model|entit"),
        ("devops", r"deploy|ci\b|cd\b|ci/cd|pipeline|docker|cloud"),
        ("testing", r"test|unit\b|integration|e2e|quality"),
        ("security", r"security|auth"),
        ("performance", r"performance|optimi[sz]|speed"),
        ("user-management", r"user|account|profile"),
        ("product-catalog", r"product|catalog|inventory"),
        ("shopping-cart", r"cart|checkout|payment"),
        ("order-management", r"order|shipping|deliver"),
        ("search", r"search|filter|sort"),
        ("reviews", r"review|rating|feedback"),
    ]
]


def infer_priority(text: str) -> Priority:
    if _HIGH_PRIORITY.search(text):
        return "high"
    if _LOW_PRIORITY.search(text):
        return "low"
    return "medium"


def infer_effort(text: str) -> float:
    """Hours from the first '<number> <unit>' token (hours/days/weeks), else the fallback."""
    m = _EFFORT.search(text)
    if not m:
        return DEFAULT_EFFORT_HOURS
    amount = float(m.group(1))
    unit = (m.group(2) or m.group(3)).lower()[0]
    return amount * _HOURS_PER_UNIT[unit]


def infer_tags(text: str) -> list[str]:
    return [tag for tag, pattern in _TAG_RULES if pattern.search(text)]
