from __future__ import annotations

import logging

from requirements_planner.core.model import DependencyGraph, Edge, Node, Task


logger = logging.getLogger(__name__)


def build_graph(tasks: list[Task]) -> DependencyGraph:
    """Flatten a task tree into nodes plus hierarchy and dependency edges.

    - hierarchy edge: parent -> subtask
    - dependency edge: task -> each task it depends on

    Edges pointing at unknown ids are filtered. Cycles are kept as-is.
    """

    nodes: list[Node] = []
    node_ids: set[str] = set()
    pending: list[Edge] = []

    def visit(task: Task, parent_id: str | None) -> None:
        if task.id in node_ids:
            logger.warning("duplicate task id %s; keeping the first occurrence", task.id)
        else:
            node_ids.add(task.id)
            nodes.append(
                Node(
                    id=task.id,
                    label=task.title,
                    category=task.category,
                    priority=task.priority,
                    parent_id=parent_id,
                )
            )
        if parent_id is not None:
            pending.append(Edge(source=parent_id, target=task.id, type="hierarchy"))
        for dep in task.dependencies:
            pending.append(Edge(source=task.id, target=dep, type="dependency"))
        for sub in task.subtasks:
            visit(sub, task.id)

    for t in tasks:
        visit(t, None)

    edges: list[Edge] = []
    emitted: set[tuple[str, str, str]] = set()
    dropped = 0
    for e in pending:
        key = (e.source, e.target, e.type)
        if e.source not in node_ids or e.target not in node_ids:
            dropped += 1
            continue
        if key in emitted:
            continue
        emitted.add(key)
        edges.append(e)

    if dropped:
        logger.debug("dropped %d edges with unknown endpoints", dropped)
    return DependencyGraph(nodes=nodes, edges=edges)
