"""
Cluster Interfaces Layer
========================

Node list and coordinator flag endpoints.
"""

from innkeeper.cluster.interfaces.controllers import router as cluster_router

__all__ = ["cluster_router"]
