"""
Cluster Infrastructure Repositories
===================================
"""

from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from innkeeper.cluster.application.services import INodeRepository
from innkeeper.cluster.domain import Node
from innkeeper.cluster.infrastructure.models import NodeModel
from innkeeper.infrastructure.database import store_operation, upsert_insert


class SQLAlchemyNodeRepository(INodeRepository):
    """SQLAlchemy implementation of the node registry."""

    def __init__(self, session: AsyncSession):
        self._session = session

    @staticmethod
    def _to_entity(model: NodeModel) -> Node:
        return Node(id=model.id, ip_address=model.ip_address, node_id=model.node_id)

    @store_operation("list nodes")
    async def list_nodes(self) -> List[Node]:
        result = await self._session.execute(select(NodeModel).order_by(NodeModel.id.asc()))
        return [self._to_entity(model) for model in result.scalars().all()]

    @store_operation("register node")
    async def register_node(self, ip_address: str, node_id: int) -> Node:
        """Insert the node, or update the cluster index of an already known address."""
        stmt = upsert_insert(self._session, NodeModel).values(ip_address=ip_address, node_id=node_id)
        stmt = stmt.on_conflict_do_update(
            index_elements=["ip_address"],
            set_={"node_id": stmt.excluded.node_id},
        )
        await self._session.execute(stmt)

        select_node = (
            select(NodeModel)
            .where(NodeModel.ip_address == ip_address)
            .execution_options(populate_existing=True)
        )
        model = (await self._session.execute(select_node)).scalar_one()
        return self._to_entity(model)
