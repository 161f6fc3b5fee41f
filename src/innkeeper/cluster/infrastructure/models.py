"""
Cluster Infrastructure Models
=============================

SQLAlchemy ORM model for the node registry.
"""

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from innkeeper.infrastructure.database import Base


class NodeModel(Base):
    """
    Database model for Node entity.

    Maps to the 'nodes' table. The coordinator flag is not stored.
    """
    __tablename__ = "nodes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ip_address: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    node_id: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
