"""
Cluster Application DTOs
========================
"""

from typing import List

from pydantic import Field

from innkeeper.cluster.domain import Node
from innkeeper.shared.api.schemas import CamelModel


class NodeView(CamelModel):
    """Node with its polled coordinator flag."""
    id: int
    ip_address: str
    node_id: int
    is_coordinator: bool

    @classmethod
    def from_domain(cls, node: Node) -> "NodeView":
        return cls(
            id=node.id or 0,
            ip_address=node.ip_address,
            node_id=node.node_id,
            is_coordinator=node.is_coordinator,
        )


class NodeListResponse(CamelModel):
    """Response model for GET /nodes."""
    success: bool = True
    result: List[NodeView] = Field(default_factory=list)
    coordinator_count: int = 0
