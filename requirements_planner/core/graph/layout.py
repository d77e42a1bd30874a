from __future__ import annotations

import logging
import math
import random
from typing import Optional

from requirements_planner.core.errors import ContractError
from requirements_planner.core.model import DependencyGraph, LayoutNode


logger = logging.getLogger(__name__)

# Force model, applied once per iteration in this order:
#   1. repulsion, every pair closer than REPULSION_THRESHOLD:
#        each node moves REPULSION_STRENGTH / d away from the other
#   2. attraction, every edge (either type):
#        each endpoint moves SPRING_CONSTANT * (d - IDEAL_EDGE_LENGTH) toward the other
#   3. clamp every node so its whole circle stays on the canvas
# Seeds are uniform over the canvas from random.Random(seed).
ITERATIONS = 100
NODE_RADIUS = 30.0
REPULSION_THRESHOLD = 100.0
REPULSION_STRENGTH = 500.0
SPRING_CONSTANT = 0.05
IDEAL_EDGE_LENGTH = 100.0
MIN_DISTANCE = 1.0


def layout(
    graph: DependencyGraph,
    width: float,
    height: float,
    *,
    seed: Optional[int] = None,
    iterations: int = ITERATIONS,
    radius: float = NODE_RADIUS,
    repulsion_threshold: float = REPULSION_THRESHOLD,
    repulsion_strength: float = REPULSION_STRENGTH,
    spring_constant: float = SPRING_CONSTANT,
    ideal_edge_length: float = IDEAL_EDGE_LENGTH,
) -> list[LayoutNode]:
    """Place graph nodes on a width x height canvas with a bounded force simulation.

    Output order follows graph.nodes. The same seed gives the same coordinates.
    An empty graph gives an empty list.
    """

    if width <= 0 or height <= 0:
        raise ContractError(
            code="E_INVALID_CANVAS",
            message=f"canvas must have positive size, got {width}x{height}",
            path="width/height",
        )
    if iterations <= 0:
        raise ContractError(
            code="E_INVALID_ITERATIONS",
            message=f"iterations must be positive, got {iterations}",
            path="iterations",
        )

    if not graph.nodes:
        return []

    rng = random.Random(seed)
    nodes = [
        LayoutNode(
            id=n.id,
            label=n.label,
            category=n.category,
            priority=n.priority,
            x=rng.uniform(0, width),
            y=rng.uniform(0, height),
            radius=radius,
            parent_id=n.parent_id,
        )
        for n in graph.nodes
    ]
    by_id = {n.id: n for n in nodes}

    springs: list[tuple[LayoutNode, LayoutNode]] = []
    for e in graph.edges:
        source = by_id.get(e.source)
        target = by_id.get(e.target)
        if source is None or target is None:
            logger.warning("skipping edge %s -> %s with unknown endpoint", e.source, e.target)
            continue
        if source is not target:
            springs.append((source, target))

    x_lo, x_hi = _bounds(width, radius)
    y_lo, y_hi = _bounds(height, radius)

    for _ in range(iterations):
        _repel(nodes, rng, repulsion_threshold, repulsion_strength)
        _attract(springs, spring_constant, ideal_edge_length)
        for n in nodes:
            n.x = min(max(n.x, x_lo), x_hi)
            n.y = min(max(n.y, y_lo), y_hi)

    logger.debug("laid out %d nodes / %d springs in %d iterations", len(nodes), len(springs), iterations)
    return nodes


def _bounds(extent: float, radius: float) -> tuple[float, float]:
    # A canvas narrower than one node pins everything to the centre line.
    if extent < 2 * radius:
        return extent / 2, extent / 2
    return radius, extent - radius


def _repel(nodes: list[LayoutNode], rng: random.Random, threshold: float, strength: float) -> None:
    for i in range(len(nodes)):
        a = nodes[i]
        for j in range(i + 1, len(nodes)):
            b = nodes[j]
            dx = b.x - a.x
            dy = b.y - a.y
            dist = math.hypot(dx, dy)
            if dist >= threshold:
                continue
            if dist < 1e-9:
                angle = rng.uniform(0, 2 * math.pi)
                ux, uy = math.cos(angle), math.sin(angle)
            else:
                ux, uy = dx / dist, dy / dist
            push = strength / max(dist, MIN_DISTANCE)
            a.x -= ux * push
            a.y -= uy * push
            b.x += ux * push
            b.y += uy * push


def _attract(springs: list[tuple[LayoutNode, LayoutNode]], k: float, ideal: float) -> None:
    for a, b in springs:
        dx = b.x - a.x
        dy = b.y - a.y
        dist = math.hypot(dx, dy)
        if dist < 1e-9:
            continue
        pull = k * (dist - ideal)
        ux, uy = dx / dist, dy / dist
        a.x += ux * pull
        a.y += uy * pull
        b.x -= ux * pull
        b.y -= uy * pull
