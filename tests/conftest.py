import os
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Set these BEFORE importing any project modules
os.environ["TOPOLOGY_DB_PATH"] = "./topology_test.db"
os.environ.setdefault("LOG_LEVEL", "WARNING")

from mesh_topology.api.diagnostic_logger import diagnostic_logger
from mesh_topology.api.models import Base
from mesh_topology.topology.builder import TopologyBuilder
from mesh_topology.topology.descriptors import ServiceDescriptor

DECLARATIONS_DIR = Path(__file__).resolve().parent.parent / "declarations"

SQLALCHEMY_DATABASE_URL = "sqlite:///./topology_test.db"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="session", autouse=True)
def setup_db():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    database = TestingSessionLocal()
    try:
        yield database
    finally:
        database.close()


@pytest.fixture
def db_factory():
    return TestingSessionLocal


@pytest.fixture(autouse=True)
def reset_diagnostics():
    diagnostic_logger.reset()
    yield
    diagnostic_logger.reset()


def make_service(name, port=3000, health_check_path="/health", env=None):
    return ServiceDescriptor(name=name, image=f"example/{name}:latest", port=port,
                             health_check_path=health_check_path, env=env or {})


@pytest.fixture
def builder():
    return TopologyBuilder("shop")


@pytest.fixture
def personal_color_yaml():
    return DECLARATIONS_DIR / "personal-color.yaml"
