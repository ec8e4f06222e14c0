#!/usr/bin/env python3
"""
Topology Resolver

The single step that turns a built Topology (plus its gateway bindings)
into the fully resolved graph handed to the provisioning platform.

Produces:
- Services with discovery names and backend URLs
- Edge list and normalized routing table
- Gateway bindings
- Network ingress rules, materialized once from the complete graph
- Mesh resources (virtual nodes, services, routers) when a mesh is declared
"""

import logging
import time
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..metrics import METRICS
from .builder import Edge, EdgeKind, Topology
from .gateway import EdgeGatewayBinder, ExternalEndpointHandle, GatewayHandle
from .errors import TopologyError

logger = logging.getLogger(__name__)

# Sidecar proxy settings
PROXY_CONTAINER_NAME = "envoy"
PROXY_INGRESS_PORT = 15000
PROXY_EGRESS_PORT = 15001
PROXY_IGNORED_UID = 1337
PROXY_MEMORY_LIMIT_MIB = 128


@dataclass(frozen=True)
class ResolvedService:
    name: str
    discovery_name: str
    image: str
    port: int
    replicas: int
    health_check_path: str
    env: Dict[str, str]
    backends: Tuple[str, ...]


@dataclass(frozen=True)
class IngressRule:
    """Allow TCP traffic from source into destination on port."""

    source: str
    destination: str
    port: int
    protocol: str = "tcp"
    description: str = ""


@dataclass(frozen=True)
class ResolvedTopology:
    name: str
    namespace: str
    services: Tuple[ResolvedService, ...]
    edges: Tuple[Edge, ...]
    routing_table: Dict[str, List[Dict[str, Any]]]
    endpoints: Tuple[ExternalEndpointHandle, ...]
    gateways: Tuple[GatewayHandle, ...]
    ingress_rules: Tuple[IngressRule, ...]
    network: Optional[Dict[str, Any]] = None
    mesh: Optional[Dict[str, Any]] = None
    cluster: Optional[str] = None

    def service(self, name: str) -> ResolvedService:
        for service in self.services:
            if service.name == name:
                return service
        raise KeyError(name)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "namespace": self.namespace,
            "cluster": self.cluster,
            "network": self.network,
            "services": [
                {**asdict(s), "backends": list(s.backends)} for s in self.services
            ],
            "edges": [
                {"from": e.source, "to": e.destination, "kind": e.destination_kind}
                for e in self.edges
            ],
            "routing_table": self.routing_table,
            "gateways": {
                "endpoints": [_endpoint_dict(e) for e in self.endpoints],
                "proxies": [_gateway_dict(g) for g in self.gateways],
            },
            "ingress_rules": [asdict(r) for r in self.ingress_rules],
            "mesh": self.mesh,
        }


def _strip_topology_id(data: Dict[str, Any]) -> Dict[str, Any]:
    data.pop("topology_id", None)
    return data


def _endpoint_dict(endpoint: ExternalEndpointHandle) -> Dict[str, Any]:
    data = _strip_topology_id(asdict(endpoint))
    data["host_headers"] = list(endpoint.host_headers)
    return data


def _gateway_dict(gateway: GatewayHandle) -> Dict[str, Any]:
    data = _strip_topology_id(asdict(gateway))
    data["routes"] = list(gateway.routes)
    data["function_env"] = dict(gateway.function_env)
    data["cors_methods"] = list(gateway.cors_methods)
    return data


def _destination_services(topology: Topology, edge: Edge) -> List[str]:
    if edge.destination_kind == EdgeKind.ROUTER:
        return topology.group(edge.destination).members
    return [edge.destination]


def materialize_ingress_rules(topology: Topology,
                              endpoints: Tuple[ExternalEndpointHandle, ...] = ()) -> List[IngressRule]:
    """Compute the full ingress rule set from the finished graph."""
    rules = set()
    for edge in topology.edges:
        for destination in _destination_services(topology, edge):
            rules.add(IngressRule(
                source=edge.source,
                destination=destination,
                port=topology.service(destination).port,
                description=f"Inbound traffic from {edge.source}",
            ))
    for endpoint in endpoints:
        if endpoint.target_kind == "router":
            targets = topology.group(endpoint.target).members
        else:
            targets = [endpoint.target]
        for target in targets:
            rules.add(IngressRule(
                source=endpoint.name,
                destination=target,
                port=topology.service(target).port,
                description=f"Load balancer listener on port {endpoint.port}",
            ))
    return sorted(rules, key=lambda r: (r.destination, r.source, r.port))


def _backend_urls(topology: Topology, name: str) -> Tuple[str, ...]:
    urls = []
    for edge in topology.backends_of(name):
        if edge.destination_kind == EdgeKind.ROUTER:
            port = topology.service(topology.group(edge.destination).members[0]).port
        else:
            port = topology.service(edge.destination).port
        urls.append(f"http://{topology.discovery_name(edge.destination)}:{port}")
    return tuple(urls)


def _routing_table(topology: Topology) -> Dict[str, List[Dict[str, Any]]]:
    return {
        group.virtual_name: [
            {"service": t.service, "weight": t.weight} for t in group.targets
        ]
        for group in topology.groups
    }


def _network_section(topology: Topology) -> Optional[Dict[str, Any]]:
    cluster = topology.cluster
    if cluster is None or cluster.network is None:
        return None
    network = cluster.network
    return {
        "name": network.name,
        "cidr": network.cidr,
        "max_azs": network.max_azs,
        "nat_gateways": network.nat_gateways,
        "subnets": [
            {
                "name": s.name,
                "type": s.subnet_type.value,
                "cidr": s.cidr,
                "gateway": s.gateway,
                "availability_zone": s.availability_zone,
            }
            for s in network.subnets()
        ],
    }


def _mesh_section(topology: Topology) -> Optional[Dict[str, Any]]:
    cluster = topology.cluster
    if cluster is None or not cluster.mesh_name:
        return None
    mesh_name = cluster.mesh_name

    virtual_nodes = []
    for service in topology.services:
        virtual_nodes.append({
            "name": service.name,
            "service_discovery": topology.discovery_name(service.name),
            "listener": {"protocol": "http", "port": service.port},
            "backends": [topology.discovery_name(e.destination) for e in topology.backends_of(service.name)],
            "proxy": {
                "container_name": PROXY_CONTAINER_NAME,
                "app_ports": [service.port],
                "ingress_port": PROXY_INGRESS_PORT,
                "egress_port": PROXY_EGRESS_PORT,
                "ignored_uid": PROXY_IGNORED_UID,
                "memory_limit_mib": PROXY_MEMORY_LIMIT_MIB,
                "env": {"APPMESH_VIRTUAL_NODE_NAME": f"mesh/{mesh_name}/virtualNode/{service.name}"},
            },
        })

    # routers shadow same-named services
    virtual_services = []
    for group in topology.groups:
        virtual_services.append({
            "name": topology.discovery_name(group.virtual_name),
            "provider": {"type": "virtual-router", "name": f"{group.virtual_name}-router"},
        })
    for service in topology.services:
        if topology.has_group(service.name):
            continue
        virtual_services.append({
            "name": topology.discovery_name(service.name),
            "provider": {"type": "virtual-node", "name": service.name},
        })

    virtual_routers = []
    for group in topology.groups:
        first = topology.service(group.targets[0].service)
        virtual_routers.append({
            "name": f"{group.virtual_name}-router",
            "listener": {"protocol": "http", "port": first.port},
            "routes": [{
                "name": f"{group.virtual_name}-route",
                "prefix": "/",
                "weighted_targets": [
                    {"virtual_node": t.service, "weight": t.weight} for t in group.targets
                ],
            }],
        })

    return {
        "name": mesh_name,
        "virtual_nodes": virtual_nodes,
        "virtual_services": virtual_services,
        "virtual_routers": virtual_routers,
    }


def resolve(topology: Topology, binder: Optional[EdgeGatewayBinder] = None) -> ResolvedTopology:
    """Resolve a built topology and its gateway bindings into the output graph."""
    start = time.time()
    if binder is not None and binder.topology is not topology:
        raise TopologyError("Gateway binder is bound to a different topology",
                            {"topology": topology.name, "binder_topology": binder.topology.name})
    endpoints, gateways = binder.bindings() if binder is not None else ((), ())

    services = tuple(
        ResolvedService(
            name=s.name,
            discovery_name=topology.discovery_name(s.name),
            image=s.image,
            port=s.port,
            replicas=s.replicas,
            health_check_path=s.health_check_path,
            env=dict(s.env),
            backends=_backend_urls(topology, s.name),
        )
        for s in topology.services
    )

    resolved = ResolvedTopology(
        name=topology.name,
        namespace=topology.namespace,
        cluster=topology.cluster.name if topology.cluster else None,
        services=services,
        edges=topology.edges,
        routing_table=_routing_table(topology),
        endpoints=endpoints,
        gateways=gateways,
        ingress_rules=tuple(materialize_ingress_rules(topology, endpoints)),
        network=_network_section(topology),
        mesh=_mesh_section(topology),
    )

    duration_ms = (time.time() - start) * 1000
    METRICS["resolve_latency"].observe(duration_ms)
    logger.info("Resolved %s: %d services, %d edges, %d endpoints in %.1fms",
                topology.name, len(services), len(topology.edges), len(endpoints), duration_ms)
    return resolved
