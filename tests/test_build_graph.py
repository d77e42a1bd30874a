from requirements_planner.core.extract.extract_tasks import extract
from requirements_planner.core.graph.build_graph import build_graph
from requirements_planner.core.graph.cycles import describe_cycle, find_cycles
from requirements_planner.core.io.load_document import load_document
from requirements_planner.core.model import Task


def _task(tid, deps=(), subtasks=()):
    return Task(
        id=tid,
        title=tid.upper(),
        category="general",
        priority="medium",
        estimated_effort=4.0,
        dependencies=list(deps),
        subtasks=list(subtasks),
    )


def test_every_task_and_subtask_becomes_one_node():
    tasks = extract(load_document("examples/storefront-requirements.md")).tasks
    graph = build_graph(tasks)
    assert len(graph.nodes) == 12
    assert len(graph.node_ids()) == 12

    sub = next(n for n in graph.nodes if n.id == "task-3.1")
    assert sub.parent_id == "task-3"
    assert sub.category == "backend"


def test_edge_directions():
    tasks = extract(load_document("examples/storefront-requirements.md")).tasks
    keys = build_graph(tasks).edge_keys()
    assert ("task-3", "task-3.1", "hierarchy") in keys
    assert ("task-3", "task-3.2", "hierarchy") in keys
    assert ("task-4", "task-1", "dependency") in keys
    assert ("task-6", "task-3", "dependency") in keys


def test_build_graph_is_idempotent():
    tasks = extract(load_document("examples/storefront-requirements.md")).tasks
    g1 = build_graph(tasks)
    g2 = build_graph(tasks)
    assert g1.node_ids() == g2.node_ids()
    assert g1.edge_keys() == g2.edge_keys()


def test_dangling_dependencies_are_filtered():
    graph = build_graph([_task("a", deps=["missing"]), _task("b", deps=["a"])])
    assert graph.edge_keys() == {("b", "a", "dependency")}


def test_cycles_are_kept_and_reported():
    graph = build_graph([_task("a", deps=["b"]), _task("b", deps=["a"])])
    assert graph.edge_keys() == {("a", "b", "dependency"), ("b", "a", "dependency")}

    cycles = find_cycles(graph)
    assert cycles == [["a", "b", "a"]]
    assert describe_cycle(cycles[0]) == "dependency cycle: a -> b -> a"


def test_hierarchy_edges_do_not_count_as_cycles():
    child = _task("a.1", deps=["a"])
    graph = build_graph([_task("a", subtasks=[child])])
    assert ("a", "a.1", "hierarchy") in graph.edge_keys()
    assert ("a.1", "a", "dependency") in graph.edge_keys()
    assert find_cycles(graph) == []


def test_empty_graph():
    graph = build_graph([])
    assert graph.nodes == []
    assert graph.edges == []
    assert find_cycles(graph) == []


def test_graph_to_dict_uses_parent_id_field():
    child = _task("a.1")
    data = build_graph([_task("a", subtasks=[child])]).to_dict()
    nodes = {n["id"]: n for n in data["nodes"]}
    assert nodes["a.1"]["parentId"] == "a"
    assert "parentId" not in nodes["a"]
    assert data["edges"] == [{"source": "a", "target": "a.1", "type": "hierarchy"}]
