from __future__ import annotations

import logging
import re
from collections import Counter
from dataclasses import dataclass, field, replace
from typing import Any, Optional

from requirements_planner.core.extract.heuristics import infer_effort, infer_priority, infer_tags
from requirements_planner.core.model import ExtractionResult, Phase, Task
from requirements_planner.core.route.rules_config import KeywordRule, classify, default_rules


logger = logging.getLogger(__name__)

DEFAULT_TASK_CATEGORY = "general"
IMPLICIT_PHASE_TITLE = "General"
TAB_WIDTH = 4

_FENCE = re.compile(r"^\s*(```|~~~)")
_HEADING = re.compile(r"^\s{0,3}#{1,6}\s+(.+?)(?:\s+#+)?\s*$")
_BOLD_LINE = re.compile(r"^\s*(?:\*\*|__)(.+?)(?:\*\*|__)\s*:?\s*$")
_PHASE_TITLE = re.compile(
    r"^(?:\d+[.)]\s*)?(?:phase|sprint|milestone|stage|epic)\s+(?:\d+|[ivx]+)\b", re.IGNORECASE
)
_LIST_ITEM = re.compile(r"^([ \t]*)(?:[-*+\u2022]|\d+[.)])\s+(.*\S)\s*$")
_RULE_LINE = re.compile(r"^\s*([-*_])(?:\s*\1){2,}\s*$")
_CHECKBOX = re.compile(r"^\[[ xX]\]\s+")

_REQUIREMENTS_HEADING = re.compile(
    r"^(?:functional requirements|requirements|user stories|features)\b", re.IGNORECASE
)
_REQUIREMENT_LANGUAGE = re.compile(
    r"\b(?:must|should|shall|needs? to|required to|has to|have to)\b", re.IGNORECASE
)

_DEPENDENCY_MARKER = re.compile(
    r"\b(?:depends on|dependent on|requires|after|following|blocked by|prerequisites?:?)\s+"
    r"(.+?)(?=\)|;|\.\s|\.$|$)",
    re.IGNORECASE,
)
_DEPENDENCY_CLAUSE = re.compile(
    r"\s*\((?:depends on|dependent on|requires|after|following|blocked by|prerequisites?)\b[^)]*\)",
    re.IGNORECASE,
)
_REF_SPLIT = re.compile(r"\s*(?:,|&|\band\b)\s*", re.IGNORECASE)
_MIN_REF_LENGTH = 3


@dataclass
class _Draft:
    text: str
    indent: int
    description: list[str] = field(default_factory=list)
    children: list["_Draft"] = field(default_factory=list)

    def walk(self) -> list["_Draft"]:
        out: list[_Draft] = [self]
        for c in self.children:
            out.extend(c.walk())
        return out


@dataclass
class _Section:
    title: str
    items: list[_Draft] = field(default_factory=list)


def extract(document: Any, rules: Optional[list[KeywordRule]] = None) -> ExtractionResult:
    """Turn a markdown-like requirements document into phases, tasks and requirements.

    Never raises for bad input: empty, whitespace-only or non-string documents
    produce an empty result.
    """

    if not isinstance(document, str):
        if document is not None:
            logger.warning("ignoring non-string document of type %s", type(document).__name__)
        return ExtractionResult(phases=[], requirements=[])

    phases = extract_tasks_with_dependencies(document, rules)
    requirements = extract_requirements(document)
    logger.info(
        "extracted %d phases, %d tasks, %d requirements",
        len(phases),
        sum(len(p.tasks) for p in phases),
        len(requirements),
    )
    return ExtractionResult(phases=phases, requirements=requirements)


def extract_requirements(document: str) -> list[str]:
    """Requirement statements anywhere in the document, de-duplicated in first-seen order.

    A line qualifies when it uses requirement language (must/should/shall/need to),
    or when it is a list item under a Requirements / User Stories / Features heading.
    """

    if not isinstance(document, str):
        return []

    out: list[str] = []
    seen: set[str] = set()
    in_requirements_section = False

    for line in _content_lines(document):
        heading = _header_title(line)
        if heading is not None:
            in_requirements_section = bool(_REQUIREMENTS_HEADING.match(heading))
            continue

        m = _LIST_ITEM.match(line)
        if m:
            text = _clean(m.group(2))
            qualifies = in_requirements_section or bool(_REQUIREMENT_LANGUAGE.search(text))
        else:
            text = _clean(line)
            qualifies = bool(_REQUIREMENT_LANGUAGE.search(text))

        if qualifies and text and text not in seen:
            seen.add(text)
            out.append(text)

    return out


def extract_tasks_with_dependencies(
    document: str, rules: Optional[list[KeywordRule]] = None
) -> list[Phase]:
    """Parse phases and classify every list item into a Task tree.

    Dependencies are resolved only against tasks that appear earlier in the
    document; unresolved references are dropped.
    """

    if not isinstance(document, str) or not document.strip():
        return []

    rules = default_rules() if rules is None else rules
    sections = _parse_sections(document)

    seen: list[Task] = []
    dropped = 0
    phases: list[Phase] = []
    counter = 0

    for section in sections:
        tasks: list[Task] = []
        for draft in section.items:
            counter += 1
            task, dropped_here = _build_task(draft, f"task-{counter}", rules, seen)
            dropped += dropped_here
            tasks.append(task)
        phases.append(
            Phase(
                title=section.title,
                # every list line of the phase, nested ones included, in document order
                raw_tasks=[d.text for item in section.items for d in item.walk()],
                tasks=tasks,
            )
        )

    if dropped:
        logger.debug("dropped %d unresolved dependency references", dropped)
    return phases


def promote_by_dependents(phases: list[Phase]) -> list[Phase]:
    """Raise priority of tasks other tasks wait on.

    Depended on by 3 or more tasks -> high; a low task depended on at all -> medium.
    Returns new phases; the input is untouched.
    """

    counts: Counter[str] = Counter()
    for phase in phases:
        for task in phase.tasks:
            for t in task.walk():
                counts.update(set(t.dependencies))

    def promote(task: Task) -> Task:
        n = counts.get(task.id, 0)
        priority = task.priority
        if n >= 3:
            priority = "high"
        elif n >= 1 and priority == "low":
            priority = "medium"
        return replace(task, priority=priority, subtasks=[promote(s) for s in task.subtasks])

    return [replace(p, tasks=[promote(t) for t in p.tasks]) for p in phases]


def summarize_extraction(result: ExtractionResult) -> str:
    all_tasks = result.all_tasks()
    counts = Counter(t.category for t in all_tasks)
    parts = [f"{k}={counts[k]}" for k in sorted(counts)]
    return (
        f"OK: {len(result.phases)} phases, {len(result.tasks)} tasks "
        f"({len(all_tasks) - len(result.tasks)} subtasks), "
        f"{len(result.requirements)} requirements"
        + ("\nCategories: " + ", ".join(parts) if parts else "")
    )


def _content_lines(document: str) -> list[str]:
    """Document lines outside fenced code blocks, tabs expanded."""
    out: list[str] = []
    in_fence = False
    for raw in document.splitlines():
        if _FENCE.match(raw):
            in_fence = not in_fence
            continue
        if in_fence:
            continue
        out.append(raw.expandtabs(TAB_WIDTH))
    return out


def _header_title(line: str) -> Optional[str]:
    m = _HEADING.match(line)
    if m:
        return _clean(m.group(1))

    if _LIST_ITEM.match(line) and line[:1].isspace():
        return None

    stripped = line.strip()
    m = _BOLD_LINE.match(stripped)
    if m:
        return _clean(m.group(1))

    # Unindented "Phase 2: Build" or "1. Sprint 1 - Setup".
    if stripped and not line[:1].isspace() and _PHASE_TITLE.match(_clean(stripped)):
        return _clean(re.sub(r"^\d+[.)]\s*", "", stripped))
    return None


def _parse_sections(document: str) -> list[_Section]:
    sections: list[_Section] = []
    current: Optional[_Section] = None
    stack: list[_Draft] = []

    for line in _content_lines(document):
        if not line.strip() or _RULE_LINE.match(line):
            continue

        title = _header_title(line)
        if title is not None:
            current = _Section(title=title)
            sections.append(current)
            stack = []
            continue

        m = _LIST_ITEM.match(line)
        if m:
            text = _clean(m.group(2))
            if not text:
                continue
            if current is None:
                current = _Section(title=IMPLICIT_PHASE_TITLE)
                sections.append(current)
            indent = len(m.group(1))
            while stack and stack[-1].indent >= indent:
                stack.pop()
            draft = _Draft(text=text, indent=indent)
            if stack:
                stack[-1].children.append(draft)
            else:
                current.items.append(draft)
            stack.append(draft)
            continue

        # Indented prose continues the deepest item it sits under; flush-left prose ends the list.
        indent = len(line) - len(line.lstrip())
        if stack and indent > 0:
            owner = next((d for d in reversed(stack) if d.indent < indent), None)
            if owner is not None:
                owner.description.append(_clean(line))
                continue
        stack = []

    return [s for s in sections if s.items]


def _build_task(
    draft: _Draft, task_id: str, rules: list[KeywordRule], seen: list[Task]
) -> tuple[Task, int]:
    description = " ".join(draft.description)
    full_text = f"{draft.text} {description}".strip()

    refs = _dependency_refs(full_text)
    dependencies: list[str] = []
    for ref in refs:
        dep_id = _resolve_reference(ref, seen)
        if dep_id is not None and dep_id not in dependencies:
            dependencies.append(dep_id)
    dropped = len(refs) - len(dependencies)

    title = _DEPENDENCY_CLAUSE.sub("", draft.text).strip() or draft.text

    # Registered before children so subtasks may depend on their parent.
    stub = Task(
        id=task_id,
        title=title,
        category=classify(full_text, rules, DEFAULT_TASK_CATEGORY),
        priority=infer_priority(full_text),
        estimated_effort=infer_effort(full_text),
        dependencies=dependencies,
        description=description,
        tags=infer_tags(full_text),
    )
    seen.append(stub)

    subtasks: list[Task] = []
    for i, child in enumerate(draft.children, start=1):
        sub, sub_dropped = _build_task(child, f"{task_id}.{i}", rules, seen)
        dropped += sub_dropped
        subtasks.append(sub)

    return replace(stub, subtasks=subtasks), max(dropped, 0)


def _dependency_refs(text: str) -> list[str]:
    refs: list[str] = []
    for m in _DEPENDENCY_MARKER.finditer(text):
        for part in _REF_SPLIT.split(m.group(1)):
            ref = re.sub(r"^(?:the|task)\s+", "", part.strip(" \"'`*_:"), flags=re.IGNORECASE)
            if len(ref) >= _MIN_REF_LENGTH:
                refs.append(ref)
    return refs


def _resolve_reference(ref: str, seen: list[Task]) -> Optional[str]:
    needle = ref.lower()
    for t in seen:
        if t.id.lower() == needle:
            return t.id
    for t in seen:
        if t.title.lower() == needle:
            return t.id
    for t in seen:
        if needle in t.title.lower():
            return t.id
    # A whole earlier title named inside a longer reference, on word boundaries only.
    for t in seen:
        hay = t.title.lower()
        if len(hay) >= _MIN_REF_LENGTH and re.search(
            rf"(?<![a-z0-9]){re.escape(hay)}(?![a-z0-9])", needle
        ):
            return t.id
    return None


def _clean(text: str) -> str:
    text = text.strip()
    text = _CHECKBOX.sub("", text)
    text = text.replace("**", "").replace("__", "").replace("`", "")
    return text.strip()
