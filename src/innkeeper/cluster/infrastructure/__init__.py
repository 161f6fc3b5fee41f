"""
Cluster Infrastructure Layer
============================

- Models: node registry table
- Repositories: node registry data access
- External: HTTP coordinator probe and the hot-reloaded cluster config
"""

from innkeeper.cluster.infrastructure.models import NodeModel
from innkeeper.cluster.infrastructure.repositories import SQLAlchemyNodeRepository
from innkeeper.cluster.infrastructure.external import (
    ClusterConfigManager,
    HTTPCoordinatorProbe,
)

__all__ = [
    "NodeModel",
    "SQLAlchemyNodeRepository",
    "ClusterConfigManager",
    "HTTPCoordinatorProbe",
]
