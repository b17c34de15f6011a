# backend/app/models/graph_edge.py
from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String

from app.db.base_class import Base


class GraphEdgeRecord(Base):
    """SENDS_TO: source -> destination. Counters are written once, on creation."""
    __tablename__ = "graph_edges"

    source_ip = Column(String, primary_key=True)
    destination_ip = Column(String, primary_key=True)
    packets = Column(Integer, nullable=False, default=0)
    bytes_transferred = Column(String, nullable=False, default="0.0M")

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
