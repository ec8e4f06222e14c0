# file: models.py

import os
import uuid

from sqlalchemy import JSON, Column, DateTime, Integer, String, create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.sql import func

Base = declarative_base()


class TopologyRecord(Base):
    __tablename__ = "topologies"
    id = Column(String, primary_key=True, default=lambda: f"topo-{uuid.uuid4().hex[:8]}")
    name = Column(String, nullable=False)
    namespace = Column(String, nullable=False)
    declaration = Column(JSON, nullable=False)   # as submitted
    resolved = Column(JSON, nullable=False)      # resolved graph
    service_count = Column(Integer, default=0)
    edge_count = Column(Integer, default=0)
    status = Column(String, default="resolved")
    created_at = Column(DateTime, server_default=func.now())


# ============================================================================
# Database Configuration (SQLite for Persistence)
# ============================================================================

DB_PATH = os.getenv("TOPOLOGY_DB_PATH", "./topologies.db")
SQLALCHEMY_DATABASE_URL = f"sqlite:///{DB_PATH}"


def make_engine(url: str = SQLALCHEMY_DATABASE_URL):
    return create_engine(url, connect_args={"check_same_thread": False})


def make_session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)
