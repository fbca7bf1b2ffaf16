"""Pydantic models defining the workflow graph handed over by the editor."""

from typing import Any, Optional

from pydantic import BaseModel, model_validator


class DataMapping(BaseModel):
    """Moves one field of the source node's response into the target node's input."""

    source: str  # e.g. "items[0].id", applied to the predecessor's response
    target: str  # e.g. "id" or "filter.ids[0]", applied to this node's parameters


class WorkflowNode(BaseModel):
    """A single API call in the workflow."""

    id: str
    api: str  # ApiDefinition id in the catalog
    name: Optional[str] = None
    overrides: dict[str, Any] = {}


class WorkflowEdge(BaseModel):
    """A directed edge between two workflow nodes."""

    source: str
    target: str
    mapping: Optional[DataMapping] = None


class WorkflowGraph(BaseModel):
    """A complete workflow graph. The compiler never mutates it."""

    id: str
    name: Optional[str] = None
    description: Optional[str] = None
    nodes: list[WorkflowNode] = []
    edges: list[WorkflowEdge] = []

    @model_validator(mode="after")
    def _check_references(self) -> "WorkflowGraph":
        seen: set[str] = set()
        for node in self.nodes:
            if node.id in seen:
                raise ValueError(f"Duplicate node id: {node.id}")
            seen.add(node.id)

        for edge in self.edges:
            for end in (edge.source, edge.target):
                if end not in seen:
                    raise ValueError(f"Edge {edge.source} -> {edge.target} references unknown node '{end}'")
        return self

    def node(self, node_id: str) -> WorkflowNode:
        for node in self.nodes:
            if node.id == node_id:
                return node
        raise KeyError(node_id)

    def incoming(self, node_id: str) -> list[WorkflowEdge]:
        return [edge for edge in self.edges if edge.target == node_id]
