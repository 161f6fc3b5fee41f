"""
Cluster Application Services
============================

Coordinator discovery: polls every registered node for its coordinator
flag. Unreachable, slow or misbehaving peers are reported as
non-coordinators; discovery itself never fails because of a peer.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Callable, List

from innkeeper.cluster.domain import CoordinatorProbeResult, Node
from innkeeper.shared.infrastructure.logging import get_logger, log_latency

logger = get_logger(__name__)


# ========== Interfaces (Dependency Inversion) ==========

class INodeRepository(ABC):
    """Interface for node registry storage."""

    @abstractmethod
    async def list_nodes(self) -> List[Node]:
        """All registered nodes, ordered by id."""

    @abstractmethod
    async def register_node(self, ip_address: str, node_id: int) -> Node:
        """Insert a node, or update the node_id of an existing address."""


class ICoordinatorProbe(ABC):
    """Asks one peer whether it is the coordinator."""

    @abstractmethod
    async def query_coordinator_flag(self, address: str) -> CoordinatorProbeResult:
        """
        Query a single peer.

        May raise PeerUnreachableException; callers treat any failure as
        "not coordinator".
        """


# ========== Application Services ==========

class CoordinatorDiscoveryService:
    """
    Determines which registered nodes currently claim the coordinator role.

    Every peer is polled concurrently, each under its own timeout, so one
    slow peer delays the answer by at most `timeout_seconds`.
    """

    def __init__(
        self,
        node_repository: INodeRepository,
        probe: ICoordinatorProbe,
        is_coordinator: Callable[[], bool],
        timeout_seconds: float = 2.0
    ):
        self._node_repo = node_repository
        self._probe = probe
        self._is_coordinator = is_coordinator
        self._timeout = timeout_seconds

    def is_coordinator_self(self) -> bool:
        """This node's own flag; no network call."""
        return self._is_coordinator()

    async def _poll(self, node: Node) -> Node:
        try:
            result = await asyncio.wait_for(
                self._probe.query_coordinator_flag(node.ip_address),
                timeout=self._timeout
            )
            is_coordinator = result.reachable and result.is_coordinator
        except asyncio.TimeoutError:
            logger.warning(
                "Cluster peer timed out",
                extra={"ip_address": node.ip_address, "timeout_seconds": self._timeout}
            )
            is_coordinator = False
        except Exception as e:
            logger.warning(
                "Cluster peer unreachable",
                extra={"ip_address": node.ip_address, "error": str(e)}
            )
            is_coordinator = False

        return Node(
            id=node.id,
            ip_address=node.ip_address,
            node_id=node.node_id,
            is_coordinator=is_coordinator,
        )

    async def list_nodes_with_status(self) -> List[Node]:
        """
        Registered nodes with a freshly polled coordinator flag.

        Returns:
            One entry per stored node, in store order

        Raises:
            RepositoryException: the node list could not be read
        """
        nodes = await self._node_repo.list_nodes()

        with log_latency(logger, "coordinator_discovery", nodes=len(nodes)):
            polled = await asyncio.gather(*(self._poll(node) for node in nodes))

        coordinators = [n.ip_address for n in polled if n.is_coordinator]
        if len(coordinators) > 1:
            logger.warning(
                "Multiple nodes claim the coordinator role",
                extra={"coordinators": coordinators}
            )
        elif not coordinators and polled:
            logger.warning("No node claims the coordinator role", extra={"nodes": len(polled)})

        return list(polled)
