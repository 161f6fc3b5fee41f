"""
Cluster Domain Layer
====================

Contains:
- Entities: Node
- Value Objects: CoordinatorProbeResult, ClusterConfig
"""

from innkeeper.cluster.domain.entities import Node
from innkeeper.cluster.domain.value_objects import ClusterConfig, CoordinatorProbeResult

__all__ = [
    "Node",
    "ClusterConfig",
    "CoordinatorProbeResult",
]
