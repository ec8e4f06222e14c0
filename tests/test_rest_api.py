import pytest
import yaml
from fastapi.testclient import TestClient

from mesh_topology.api.diagnostic_logger import diagnostic_logger
from mesh_topology.api.rest_api_server import app, get_db

from conftest import DECLARATIONS_DIR, TestingSessionLocal


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db
client = TestClient(app)


@pytest.fixture
def document():
    with open(DECLARATIONS_DIR / "personal-color.yaml") as f:
        return yaml.safe_load(f)


def test_health():
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_metrics():
    client.get("/health")
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "topology_plane_api_requests_total" in response.text


def test_resolve_dry_run(document):
    before = len(client.get("/topologies").json())
    response = client.post("/resolve", json=document)
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "personal-color"
    assert data["routing_table"]["color"] == [
        {"service": "color", "weight": 90},
        {"service": "color-v2", "weight": 10},
    ]
    assert len(client.get("/topologies").json()) == before


def test_create_topology_rest(document):
    response = client.post("/topologies", json=document)
    assert response.status_code == 201
    data = response.json()
    assert data["id"].startswith("topo-")
    assert data["name"] == "personal-color"
    assert data["namespace"] == "internal"
    assert data["service_count"] == 4
    assert data["edge_count"] == 2
    assert data["resolved"]["mesh"]["name"] == "personal-color-mesh"
    assert data["declaration"]["edges"][0] == {"from": "personal-color", "to": "name"}


def test_list_and_get_topology(document):
    topology_id = client.post("/topologies", json=document).json()["id"]

    response = client.get("/topologies")
    assert response.status_code == 200
    assert topology_id in [t["id"] for t in response.json()]

    response = client.get(f"/topologies/{topology_id}")
    assert response.status_code == 200
    assert response.json()["resolved"]["gateways"]["endpoints"][0]["name"] == "personal-color-lb-80"


def test_get_topology_not_found():
    response = client.get("/topologies/topo-nonexistent")
    assert response.status_code == 404


def test_plan(document):
    topology_id = client.post("/topologies", json=document).json()["id"]
    response = client.get(f"/topologies/{topology_id}/plan")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert response.text.startswith("topology personal-color")

    assert client.get("/topologies/topo-nonexistent/plan").status_code == 404


def test_validation(document):
    topology_id = client.post("/topologies", json=document).json()["id"]
    response = client.get(f"/topologies/{topology_id}/validation")
    assert response.status_code == 200
    assert response.json()["passed"] is True
    assert response.json()["warnings"] == 0


def test_delete_topology_rest(document):
    topology_id = client.post("/topologies", json=document).json()["id"]

    response = client.delete(f"/topologies/{topology_id}")
    assert response.status_code == 200
    assert response.json() == {"status": "deleted", "id": topology_id}

    # Test 404
    response = client.delete(f"/topologies/{topology_id}")
    assert response.status_code == 404


def test_construction_error_is_422(document):
    document["edges"].append({"from": "personal-color", "to": "search"})
    response = client.post("/topologies", json=document)
    assert response.status_code == 422
    data = response.json()
    assert data["error"] == "DanglingReferenceError"
    assert data["context"] == {"role": "Edge destination", "service": "search"}
    assert "search" in data["detail"]


def test_shape_error_is_422(document):
    document["services"][0]["colour"] = "red"
    response = client.post("/resolve", json=document)
    assert response.status_code == 422
    assert response.json()["error"] == "DeclarationError"


def test_rejections_are_recorded(document):
    document["groups"][0]["members"][0]["weight"] = -1
    response = client.post("/topologies", json=document)
    assert response.status_code == 422
    assert response.json()["error"] == "NegativeWeightError"
    assert len(diagnostic_logger.errors) == 1
    assert diagnostic_logger.errors[0]["error"].startswith("NegativeWeightError")
