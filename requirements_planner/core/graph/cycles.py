from __future__ import annotations

from requirements_planner.core.model import DependencyGraph


# Cycles are legal in a dependency graph. This is a report for display only;
# nothing in the pipeline rejects or reorders a cyclic plan.


def find_cycles(graph: DependencyGraph) -> list[list[str]]:
    """Dependency cycles as node-id paths that start and end on the same id.

    Hierarchy edges are ignored. Each distinct cycle path is reported once,
    discovered in node order.
    """

    id_to_deps: dict[str, list[str]] = {n.id: [] for n in graph.nodes}
    for e in graph.edges:
        if e.type == "dependency" and e.source in id_to_deps:
            id_to_deps[e.source].append(e.target)

    WHITE, GRAY, BLACK = 0, 1, 2
    state: dict[str, int] = {nid: WHITE for nid in id_to_deps}
    stack: list[str] = []
    emitted: set[str] = set()
    out: list[list[str]] = []

    def dfs(u: str) -> None:
        state[u] = GRAY
        stack.append(u)
        for v in id_to_deps.get(u, []):
            if v not in state:
                continue
            if state[v] == GRAY:
                cycle = stack[stack.index(v):] + [v]
                key = "->".join(cycle)
                if key not in emitted:
                    emitted.add(key)
                    out.append(cycle)
            elif state[v] == WHITE:
                dfs(v)
        stack.pop()
        state[u] = BLACK

    for nid in list(state):
        if state[nid] == WHITE:
            dfs(nid)

    return out


def describe_cycle(cycle: list[str]) -> str:
    return "dependency cycle: " + " -> ".join(cycle)
