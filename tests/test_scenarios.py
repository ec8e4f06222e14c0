import pytest

from mesh_topology.scenarios import SCENARIOS, color_rolling_release, greeter_mesh, personal_color_mesh
from mesh_topology.topology.gateway import FixedResponse
from mesh_topology.topology.resolver import resolve


@pytest.mark.parametrize("scenario", sorted(SCENARIOS))
def test_scenario_resolves(scenario):
    resolved = resolve(*SCENARIOS[scenario]())
    assert resolved.name == scenario
    assert resolved.network is not None
    assert resolved.endpoints


def test_personal_color_weights():
    topology, _ = personal_color_mesh(color_v2_weight=25)
    assert [(t.service, t.weight) for t in topology.group("color").targets] == [
        ("color", 75),
        ("color-v2", 25),
    ]


def test_personal_color_defaults_to_v1_only():
    topology, binder = personal_color_mesh()
    assert [t.weight for t in topology.group("color").targets] == [100, 0]
    assert [g.kind for g in binder.gateways] == ["http-proxy", "function-proxy"]


def test_greeter():
    resolved = resolve(*greeter_mesh())
    assert [s.name for s in resolved.services] == ["name", "greeting", "greeter"]
    assert resolved.service("greeter").backends == (
        "http://name.internal:3000",
        "http://greeting.internal:3000",
    )
    assert len(resolved.network["subnets"]) == 2
    assert resolved.endpoints[0].health_check_path == "/"
    assert resolved.mesh["name"] == "greeting-app-mesh"


def test_color_rolling_release():
    resolved = resolve(*color_rolling_release(replicas=3))
    assert resolved.service("color").replicas == 3
    endpoint = resolved.endpoints[0]
    assert endpoint.internet_facing is True
    assert endpoint.health_check_path == "/health"
    assert resolved.mesh is None
    assert resolved.gateways == ()


def test_color_rolling_release_host_rule():
    resolved = resolve(*color_rolling_release())
    endpoint = resolved.endpoints[0]
    assert endpoint.host_headers == ("color.*",)
    assert endpoint.fixed_response == FixedResponse(200, "text/plain", "OK")

    data = resolved.to_dict()["gateways"]["endpoints"][0]
    assert data["host_headers"] == ["color.*"]
    assert data["fixed_response"] == {"status_code": 200, "content_type": "text/plain", "body": "OK"}
