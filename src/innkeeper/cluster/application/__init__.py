"""
Cluster Application Layer
=========================

Contains:
- Services: coordinator discovery
- DTOs: node list response
- Interfaces implemented by the infrastructure layer
"""

from innkeeper.cluster.application.dto import NodeListResponse, NodeView
from innkeeper.cluster.application.services import (
    CoordinatorDiscoveryService,
    ICoordinatorProbe,
    INodeRepository,
)

__all__ = [
    "NodeView",
    "NodeListResponse",
    "CoordinatorDiscoveryService",
    "ICoordinatorProbe",
    "INodeRepository",
]
