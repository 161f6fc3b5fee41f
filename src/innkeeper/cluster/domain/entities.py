"""
Cluster Domain Entities
=======================
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Node:
    """
    A member of the monitoring cluster.

    is_coordinator is never stored; it is filled in by polling the node.
    """

    ip_address: str
    node_id: int
    is_coordinator: bool = False
    id: Optional[int] = None
