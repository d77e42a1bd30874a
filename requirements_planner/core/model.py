from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Optional


Category = Literal["frontend", "backend", "database", "devops", "ux", "management"]
TaskCategory = Literal["frontend", "backend", "database", "devops", "ux", "general"]
Priority = Literal["high", "medium", "low"]
EdgeType = Literal["hierarchy", "dependency"]

# Rule order is the routing tie-break; management is the fallback bucket.
CATEGORIES: tuple[str, ...] = ("frontend", "backend", "database", "devops", "ux", "management")


@dataclass(frozen=True)
class Task:
    id: str
    title: str
    category: str
    priority: Priority
    estimated_effort: float
    dependencies: list[str] = field(default_factory=list)
    subtasks: list["Task"] = field(default_factory=list)

    description: str = ""
    tags: list[str] = field(default_factory=list)

    def walk(self) -> list["Task"]:
        """This task followed by every descendant, depth-first."""
        out: list[Task] = [self]
        for sub in self.subtasks:
            out.extend(sub.walk())
        return out

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "priority": self.priority,
            "estimatedEffort": self.estimated_effort,
            "dependencies": list(self.dependencies),
            "tags": list(self.tags),
            "subtasks": [s.to_dict() for s in self.subtasks],
        }


@dataclass(frozen=True)
class Phase:
    title: str
    raw_tasks: list[str]
    tasks: list[Task] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "rawTasks": list(self.raw_tasks),
            "tasks": [t.to_dict() for t in self.tasks],
        }


@dataclass(frozen=True)
class ExtractionResult:
    phases: list[Phase]
    requirements: list[str]

    @property
    def tasks(self) -> list[Task]:
        """Top-level tasks of every phase, in document order."""
        return [t for p in self.phases for t in p.tasks]

    def all_tasks(self) -> list[Task]:
        return [d for t in self.tasks for d in t.walk()]

    def to_dict(self) -> dict[str, Any]:
        return {
            "phases": [p.to_dict() for p in self.phases],
            "requirements": list(self.requirements),
        }


@dataclass(frozen=True)
class Node:
    id: str
    label: str
    category: str
    priority: Priority
    parent_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "label": self.label,
            "category": self.category,
            "priority": self.priority,
        }
        if self.parent_id is not None:
            out["parentId"] = self.parent_id
        return out


@dataclass(frozen=True)
class Edge:
    source: str
    target: str
    type: EdgeType

    def to_dict(self) -> dict[str, Any]:
        return {"source": self.source, "target": self.target, "type": self.type}


@dataclass(frozen=True)
class DependencyGraph:
    nodes: list[Node]
    edges: list[Edge]  # hierarchy: parent -> child; dependency: dependent -> prerequisite

    def node_ids(self) -> set[str]:
        return {n.id for n in self.nodes}

    def edge_keys(self) -> set[tuple[str, str, str]]:
        return {(e.source, e.target, e.type) for e in self.edges}

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
        }


@dataclass
class LayoutNode:
    """A graph node placed on the canvas. Mutated in place while the simulation runs."""

    id: str
    label: str
    category: str
    priority: Priority
    x: float
    y: float
    radius: float
    parent_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "label": self.label,
            "category": self.category,
            "priority": self.priority,
            "x": round(self.x, 3),
            "y": round(self.y, 3),
            "radius": self.radius,
        }
        if self.parent_id is not None:
            out["parentId"] = self.parent_id
        return out


@dataclass(frozen=True)
class KnowledgeResource:
    id: str
    title: str

    description: Optional[str] = None
    content: Optional[str] = None
    category: Optional[str] = None
    tags: list[str] = field(default_factory=list)
    url: Optional[str] = None

    access_count: Optional[int] = None
    last_accessed: Optional[str] = None

    price_point: Optional[str] = None
    market_segment: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"id": self.id, "title": self.title, "tags": list(self.tags)}
        optional = {
            "description": self.description,
            "content": self.content,
            "category": self.category,
            "url": self.url,
            "accessCount": self.access_count,
            "lastAccessed": self.last_accessed,
            "pricePoint": self.price_point,
            "marketSegment": self.market_segment,
        }
        out.update({k: v for k, v in optional.items() if v is not None})
        return out
