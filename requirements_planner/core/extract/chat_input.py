from __future__ import annotations

import re


_FENCED_MARKDOWN = re.compile(r"```(?:markdown|md)[ \t]*\n?([\s\S]*?)```", re.IGNORECASE)

_FEATURE_RULES: list[tuple[str, tuple[str, ...]]] = [
    ("payment processing", ("payment",)),
    ("product catalog", ("product", "catalog")),
    ("shopping cart and checkout", ("cart|checkout",)),
    ("user accounts", ("user", "account")),
    ("search functionality", ("search",)),
    ("product reviews", ("review",)),
]

FALLBACK_FEATURES = "e-commerce platform features"


def extract_markdown_from_message(message: str) -> str:
    """Return the body of the first ```markdown / ```md block, else the message unchanged."""
    m = _FENCED_MARKDOWN.search(message)
    if m and m.group(1).strip():
        return m.group(1)
    return message


def extract_key_features(document: str) -> str:
    """Comma-separated feature phrase for a knowledge query, built from feature keywords.

    Every alternative group of a rule must be present (e.g. both "product" and "catalog").
    """
    text = document.lower()
    features: list[str] = []
    for phrase, groups in _FEATURE_RULES:
        if all(any(word in text for word in group.split("|")) for group in groups):
            features.append(phrase)
    return ", ".join(features) if features else FALLBACK_FEATURES
