"""Structural validation of a workflow graph into a single ordered path."""

from __future__ import annotations

import logging
from collections import defaultdict, deque

from .errors import (
    BRANCHING_NODE,
    CYCLE_DETECTED,
    DISCONNECTED_NODE,
    MULTIPLE_END_NODES,
    MULTIPLE_START_NODES,
    NO_END_NODE,
    NO_START_NODE,
    GraphError,
)
from .schema import WorkflowGraph

logger = logging.getLogger(__name__)


def validate(graph: WorkflowGraph) -> list[str]:
    """Return node ids ordered from the start node to the end node.

    Raises GraphError unless the graph is exactly one simple path. Any directed
    cycle is reported as CycleDetected before start/end counting, so a cycle
    that swallows every node never shows up as NoStartNode.
    """
    all_ids = [node.id for node in graph.nodes]
    in_degree: dict[str, int] = {nid: 0 for nid in all_ids}
    out_degree: dict[str, int] = {nid: 0 for nid in all_ids}
    successors: dict[str, list[str]] = defaultdict(list)

    for edge in graph.edges:
        out_degree[edge.source] += 1
        in_degree[edge.target] += 1
        successors[edge.source].append(edge.target)

    cycle = _find_cycle(all_ids, successors)
    if cycle:
        raise GraphError(
            CYCLE_DETECTED,
            f"Cycle detected: {' -> '.join(cycle + [cycle[0]])}",
            node_id=cycle[0],
            node_ids=cycle,
        )

    start = _single(
        [nid for nid in all_ids if in_degree[nid] == 0],
        none_kind=NO_START_NODE,
        many_kind=MULTIPLE_START_NODES,
        label="start",
    )
    _single(
        [nid for nid in all_ids if out_degree[nid] == 0],
        none_kind=NO_END_NODE,
        many_kind=MULTIPLE_END_NODES,
        label="end",
    )

    order: list[str] = []
    visited: set[str] = set()
    current: str | None = start
    while current is not None:
        if current in visited:
            raise GraphError(CYCLE_DETECTED, f"Walk revisited node '{current}'", node_id=current)
        if in_degree[current] > 1 or out_degree[current] > 1:
            raise GraphError(
                BRANCHING_NODE,
                f"Node '{current}' has {in_degree[current]} incoming and "
                f"{out_degree[current]} outgoing edges; only sequential workflows are supported",
                node_id=current,
            )
        visited.add(current)
        order.append(current)
        nexts = successors.get(current, [])
        current = nexts[0] if nexts else None

    unvisited = [nid for nid in all_ids if nid not in visited]
    if unvisited:
        raise GraphError(
            DISCONNECTED_NODE,
            f"Nodes not reachable from start '{start}': {', '.join(unvisited)}",
            node_id=unvisited[0],
            node_ids=unvisited,
        )

    logger.debug("Graph %s validated: %s", graph.id, " -> ".join(order))
    return order


def _single(candidates: list[str], none_kind: str, many_kind: str, label: str) -> str:
    if not candidates:
        raise GraphError(none_kind, f"Workflow has no {label} node")
    if len(candidates) > 1:
        raise GraphError(
            many_kind,
            f"Workflow has {len(candidates)} {label} nodes: {', '.join(candidates)}",
            node_id=candidates[0],
            node_ids=candidates,
        )
    return candidates[0]


def _find_cycle(all_ids: list[str], successors: dict[str, list[str]]) -> list[str]:
    """Return the nodes of one directed cycle in discovery order, or []."""
    in_degree: dict[str, int] = {nid: 0 for nid in all_ids}
    for targets in successors.values():
        for target in targets:
            in_degree[target] += 1

    # Kahn's algorithm strips every node that is not on or behind a cycle.
    queue: deque[str] = deque(nid for nid in all_ids if in_degree[nid] == 0)
    removed: set[str] = set()
    while queue:
        nid = queue.popleft()
        removed.add(nid)
        for target in successors.get(nid, []):
            in_degree[target] -= 1
            if in_degree[target] == 0:
                queue.append(target)

    remaining = [nid for nid in all_ids if nid not in removed]
    if not remaining:
        return []

    # Every remaining node still has a remaining predecessor, so walking
    # backwards through them must loop.
    predecessors: dict[str, list[str]] = defaultdict(list)
    for source, targets in successors.items():
        for target in targets:
            predecessors[target].append(source)

    position: dict[str, int] = {}
    path: list[str] = []
    current = remaining[0]
    while current not in position:
        position[current] = len(path)
        path.append(current)
        current = next(p for p in predecessors[current] if p not in removed)
    cycle = path[position[current]:]
    cycle.reverse()
    return cycle
