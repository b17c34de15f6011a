# backend/app/models/graph_node.py
from datetime import datetime

from sqlalchemy import Column, DateTime, String

from app.db.base_class import Base


class GraphNodeRecord(Base):
    """
    Network endpoint. Keyed by (ip, role): the same address seen as a
    Source and as a Destination is two nodes, like the capture graph.
    """
    __tablename__ = "graph_nodes"

    ip = Column(String, primary_key=True)
    role = Column(String, primary_key=True)   # Source | Destination
    threat_level = Column(String, index=True, nullable=False)
    description = Column(String, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
