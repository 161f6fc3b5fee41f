"""
Cluster Controllers (API Routes)
================================

GET /nodes polls every registered node; GET /is-coordinator answers this
node's own flag and is what peers call during discovery.
"""

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from innkeeper.cluster.application import (
    CoordinatorDiscoveryService,
    ICoordinatorProbe,
    NodeListResponse,
    NodeView,
)
from innkeeper.cluster.infrastructure import ClusterConfigManager, SQLAlchemyNodeRepository
from innkeeper.config import settings
from innkeeper.core import RepositoryException
from innkeeper.infrastructure.database import get_session
from innkeeper.shared.api import error_response
from innkeeper.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(tags=["Cluster"])


NODE_LIST_EXAMPLE = {
    "success": True,
    "result": [
        {"id": 1, "ipAddress": "10.0.0.11", "nodeId": 1, "isCoordinator": True},
        {"id": 2, "ipAddress": "10.0.0.12", "nodeId": 2, "isCoordinator": False}
    ],
    "coordinatorCount": 1
}


# ========== Dependencies ==========

def get_cluster_config(request: Request) -> ClusterConfigManager:
    """Cluster config manager created at startup."""
    return request.app.state.cluster_config


def get_coordinator_probe(request: Request) -> ICoordinatorProbe:
    """Shared peer probe created at startup."""
    return request.app.state.coordinator_probe


async def get_discovery_service(
    session: AsyncSession = Depends(get_session),
    cluster_config: ClusterConfigManager = Depends(get_cluster_config),
    probe: ICoordinatorProbe = Depends(get_coordinator_probe)
) -> CoordinatorDiscoveryService:
    """Get discovery service instance."""
    return CoordinatorDiscoveryService(
        node_repository=SQLAlchemyNodeRepository(session),
        probe=probe,
        is_coordinator=cluster_config.is_coordinator,
        timeout_seconds=settings.peer_timeout_seconds
    )


# ========== Route Handlers ==========

@router.get(
    "/nodes",
    response_model=NodeListResponse,
    response_model_by_alias=True,
    summary="List cluster nodes",
    description="""
    Every registered node with a freshly polled coordinator flag.

    Unreachable nodes are listed with `isCoordinator: false`.
    `coordinatorCount` other than 1 means the cluster has no coordinator
    or more than one.
    """,
    responses={200: {"content": {"application/json": {"example": NODE_LIST_EXAMPLE}}}}
)
async def list_nodes(
    service: CoordinatorDiscoveryService = Depends(get_discovery_service)
):
    try:
        nodes = await service.list_nodes_with_status()
    except RepositoryException as e:
        logger.error("Unable to list nodes", extra={"error": e.message})
        return error_response(
            "Unable to list nodes",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    return NodeListResponse(
        result=[NodeView.from_domain(node) for node in nodes],
        coordinator_count=sum(1 for node in nodes if node.is_coordinator)
    )


@router.get(
    "/is-coordinator",
    summary="Is this node the coordinator",
    description="Returns the JSON boolean `true` or `false`.",
    responses={200: {"content": {"application/json": {"example": True}}}}
)
async def is_coordinator(
    cluster_config: ClusterConfigManager = Depends(get_cluster_config)
) -> JSONResponse:
    return JSONResponse(content=cluster_config.is_coordinator())
