from __future__ import annotations

import logging
from typing import Iterable, Optional

from requirements_planner.core.model import CATEGORIES, Phase
from requirements_planner.core.route.rules_config import KeywordRule, classify, default_rules


logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "management"

SPECIALIST_NAMES: dict[str, str] = {
    "frontend": "Frontend Developer",
    "backend": "Backend Developer",
    "database": "Database Architect",
    "devops": "DevOps Engineer",
    "ux": "UX Designer",
    "management": "Development Manager",
}


def route_task(text: str, rules: Optional[list[KeywordRule]] = None) -> str:
    """Specialist category for one task description; first matching rule wins."""
    return classify(text, default_rules() if rules is None else rules, DEFAULT_CATEGORY)


def route(phases: Iterable[Phase], rules: Optional[list[KeywordRule]] = None) -> dict[str, list[str]]:
    """Assign every raw task string of every phase to a specialist.

    The result always has all six categories as keys, in routing order; the
    value lists together hold exactly one entry per input task.
    """

    rules = default_rules() if rules is None else rules
    assignments: dict[str, list[str]] = {c: [] for c in CATEGORIES}

    total = 0
    for phase in phases:
        for task in phase.raw_tasks:
            assignments[route_task(task, rules)].append(task)
            total += 1

    logger.debug(
        "routed %d tasks: %s",
        total,
        ", ".join(f"{c}={len(v)}" for c, v in assignments.items()),
    )
    return assignments


def format_assignments(assignments: dict[str, list[str]]) -> str:
    """Markdown message listing each specialist's tasks; empty categories are skipped."""
    lines = ["## Task Assignments by Specialist", ""]
    for category in CATEGORIES:
        tasks = assignments.get(category) or []
        if not tasks:
            continue
        lines.append(f"### {SPECIALIST_NAMES[category]}")
        lines.extend(f"- {t}" for t in tasks)
        lines.append("")
    return "\n".join(lines)
