from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

from requirements_planner.core.errors import RulesConfigError


# Checked in this order; the first matching category wins.
RULE_ORDER: tuple[str, ...] = ("frontend", "backend", "database", "devops", "ux")

DEFAULT_RULES: dict[str, list[str]] = {
    "frontend": [
        "frontend", "front-end", "ui", "component", "react", "vue", "angular", "css",
        "tailwind", "html", "style", "styling", "layout", "responsive", "mobile",
        "desktop", "animation", "page", "screen", "form", "login form", "button", "navbar",
    ],
    "backend": [
        "backend", "back-end", "api", "endpoint", "server", "route", "controller",
        "middleware", "authentication", "authorization", "auth", "webhook", "graphql",
        "rest", "microservice",
    ],
    "database": [
        "database", "db", "schema", "model", "query", "sql", "nosql", "migration",
        "table", "collection", "entity", "postgres", "postgresql", "mysql", "mongodb",
    ],
    "devops": [
        "devops", "deployment", "deploy", "ci", "cd", "ci/cd", "pipeline", "container",
        "docker", "kubernetes", "k8s", "cloud", "aws", "azure", "gcp", "monitoring",
        "logging", "infrastructure", "hosting", "terraform",
    ],
    "ux": [
        "ux", "user experience", "wireframe", "mockup", "prototype", "user research",
        "usability", "accessibility", "flow", "journey", "persona", "design",
    ],
}


@dataclass(frozen=True)
class KeywordRule:
    category: str
    keywords: tuple[str, ...]
    pattern: re.Pattern[str]

    def matches(self, text: str) -> bool:
        return self.pattern.search(text) is not None


def compile_keywords(keywords: list[str]) -> re.Pattern[str]:
    """Case-insensitive, word-bounded, optional plural 's'. Longest phrases first."""
    alts = "|".join(re.escape(k) for k in sorted(keywords, key=len, reverse=True))
    return re.compile(rf"(?<![a-z0-9])(?:{alts})s?(?![a-z0-9])", re.IGNORECASE)


def build_rules(keyword_map: dict[str, list[str]]) -> list[KeywordRule]:
    rules: list[KeywordRule] = []
    for category in RULE_ORDER:
        keywords = keyword_map.get(category) or []
        if not keywords:
            continue
        rules.append(
            KeywordRule(
                category=category,
                keywords=tuple(keywords),
                pattern=compile_keywords(keywords),
            )
        )
    return rules


def load_rules_file(path: str | Path) -> dict[str, list[str]]:
    """Load keyword overrides from a YAML file.

    Format:
      <category>: ["keyword", "multi word phrase", ...]

    Categories must be one of RULE_ORDER; their check order cannot be changed.
    """
    p = Path(path)
    raw = yaml.safe_load(p.read_text(encoding="utf-8"))
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise RulesConfigError("rules file must be a mapping of category -> list[str]")

    out: dict[str, list[str]] = {}
    for k, v in raw.items():
        if not isinstance(k, str) or k.strip() not in RULE_ORDER:
            raise RulesConfigError(
                f"unknown rule category: {k!r} (choose from: {', '.join(RULE_ORDER)})"
            )
        if not isinstance(v, list) or not v:
            raise RulesConfigError(f"rule '{k}' must be a non-empty list")
        keywords: list[str] = []
        for item in v:
            if not isinstance(item, str) or not item.strip():
                raise RulesConfigError(f"rule '{k}' keywords must be non-empty strings")
            keywords.append(item.strip().lower())
        out[k.strip()] = keywords
    return out


def merged_rules(overrides: Optional[dict[str, list[str]]] = None) -> dict[str, list[str]]:
    """Return DEFAULT_RULES with per-category keyword lists replaced by overrides."""
    merged = {k: list(v) for k, v in DEFAULT_RULES.items()}
    if overrides:
        for k, v in overrides.items():
            merged[k] = list(v)
    return merged


def load_and_merge(rules_file: Optional[str]) -> list[KeywordRule]:
    if not rules_file:
        return build_rules(merged_rules())
    return build_rules(merged_rules(load_rules_file(rules_file)))


def default_rules() -> list[KeywordRule]:
    return build_rules(DEFAULT_RULES)


def classify(text: str, rules: list[KeywordRule], default: str) -> str:
    for rule in rules:
        if rule.matches(text):
            return rule.category
    return default
