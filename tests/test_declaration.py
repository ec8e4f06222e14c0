"""Tests for loading and replaying topology declarations"""

import json

import pytest

from mesh_topology.scenarios import personal_color_mesh
from mesh_topology.topology.builder import EdgeKind
from mesh_topology.topology.declaration import (
    build_from_declaration,
    load_declaration,
    parse_declaration,
    resolve_declaration,
)
from mesh_topology.topology.descriptors import SubnetType
from mesh_topology.topology.errors import (
    DanglingReferenceError,
    DeclarationError,
    InvalidDescriptorError,
    NegativeWeightError,
    NoRouteTargetError,
)
from mesh_topology.topology.gateway import FixedResponse
from mesh_topology.topology.resolver import resolve


def minimal(**overrides):
    document = {
        "name": "shop",
        "services": [
            {"name": "web", "image": "example/web", "port": 8080},
            {"name": "cart", "image": "example/cart", "port": 3000},
        ],
        "edges": [{"from": "web", "to": "cart"}],
    }
    document.update(overrides)
    return document


class TestLoading:
    def test_load_yaml_file(self, personal_color_yaml):
        declaration = load_declaration(personal_color_yaml)
        assert declaration.name == "personal-color"
        assert declaration.network.max_azs == 2
        assert declaration.network.subnets[0].type == SubnetType.PUBLIC
        assert declaration.edges[0].source == "personal-color"
        assert declaration.groups[0].virtual_name == "color"
        assert declaration.exposures[0].function_proxy.methods == ["GET", "POST"]

    def test_parse_json_text(self):
        declaration = parse_declaration(json.dumps(minimal()))
        assert [s.name for s in declaration.services] == ["web", "cart"]
        assert declaration.services[0].health_check_path == "/health"

    def test_unknown_key_is_shape_error(self):
        with pytest.raises(DeclarationError) as exc:
            parse_declaration(minimal(extra_field=True))
        assert exc.value.context["errors"][0]["loc"] == "extra_field"

    def test_missing_field_is_shape_error(self):
        with pytest.raises(DeclarationError):
            parse_declaration({"name": "shop", "services": [{"name": "web"}]})

    def test_invalid_yaml(self):
        with pytest.raises(DeclarationError):
            parse_declaration("name: [unclosed")

    def test_top_level_must_be_mapping(self):
        with pytest.raises(DeclarationError):
            parse_declaration("- name: shop")

    def test_dump_parses_back(self, personal_color_yaml):
        declaration = load_declaration(personal_color_yaml)
        dumped = declaration.model_dump(by_alias=True, exclude_none=True, mode="json")
        assert parse_declaration(dumped) == declaration


class TestReplay:
    def test_build_minimal(self):
        topology, binder = build_from_declaration(minimal())
        assert topology.name == "shop"
        assert topology.cluster is None
        assert len(topology.edges) == 1
        assert binder.endpoints == []

    def test_network_without_cluster_gets_default_cluster(self):
        topology, _ = build_from_declaration(minimal(network={"name": "shop-vpc", "maxAzs": 1}))
        assert topology.cluster.name == "shop-cluster"
        assert topology.namespace == "internal"
        assert len(topology.cluster.network.subnets()) == 2

    def test_edge_prefers_virtual_name(self, personal_color_yaml):
        topology, _ = build_from_declaration(load_declaration(personal_color_yaml))
        kinds = {e.destination: e.destination_kind for e in topology.edges}
        assert kinds == {"name": EdgeKind.SERVICE, "color": EdgeKind.ROUTER}

    def test_dangling_edge(self):
        with pytest.raises(DanglingReferenceError) as exc:
            build_from_declaration(minimal(edges=[{"from": "web", "to": "search"}]))
        assert exc.value.context == {"role": "Edge destination", "service": "search"}

    def test_dangling_group_member(self):
        groups = [{"virtualName": "checkout", "members": [{"service": "missing", "weight": 1}]}]
        with pytest.raises(DanglingReferenceError):
            build_from_declaration(minimal(groups=groups))

    def test_negative_weight(self):
        groups = [{"virtualName": "checkout", "members": [{"service": "cart", "weight": -5}]}]
        with pytest.raises(NegativeWeightError):
            build_from_declaration(minimal(groups=groups))

    def test_unknown_exposure_target(self):
        with pytest.raises(NoRouteTargetError):
            build_from_declaration(minimal(exposures=[{"target": "search"}]))

    def test_exposure_of_router(self):
        groups = [{"virtualName": "checkout", "members": [{"service": "cart", "weight": 1}]}]
        topology, binder = build_from_declaration(
            minimal(groups=groups, exposures=[{"target": "checkout", "port": 443}])
        )
        assert binder.endpoints[0].target_kind == "router"
        assert binder.endpoints[0].target_port == 3000

    def test_exposure_listener_rules(self):
        exposure = {
            "target": "web",
            "hostHeaders": ["web.*"],
            "fixedResponse": {"statusCode": 200, "contentType": "text/plain", "body": "OK"},
        }
        _, binder = build_from_declaration(minimal(exposures=[exposure]))
        endpoint = binder.endpoints[0]
        assert endpoint.host_headers == ("web.*",)
        assert endpoint.fixed_response == FixedResponse(200, "text/plain", "OK")

    def test_fixed_response_without_hosts_rejected(self):
        exposure = {"target": "web", "fixedResponse": {}}
        with pytest.raises(InvalidDescriptorError):
            build_from_declaration(minimal(exposures=[exposure]))


def test_declaration_matches_personal_color_scenario(personal_color_yaml):
    from_file = resolve_declaration(load_declaration(personal_color_yaml))
    from_code = resolve(*personal_color_mesh(color_v2_weight=10))
    assert from_file.to_dict() == from_code.to_dict()
