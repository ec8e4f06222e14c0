#!/usr/bin/env python3
"""
Topology Declarations

Loads a static declaration document (YAML or JSON) and replays it through
the TopologyBuilder and EdgeGatewayBinder.

Recognized shape:
    name: personal-color
    network: {name, cidr, maxAzs, natGateways, subnets: [{name, type, cidrMask}]}
    cluster: {name, namespace, mesh}
    services: [{name, image, port, replicas, healthCheckPath, env}]
    edges: [{from, to}]
    groups: [{virtualName, members: [{service, weight}]}]
    exposures: [{target, port, internetFacing, healthCheckPath, gatewayProxy, functionProxy,
                 hostHeaders, fixedResponse: {statusCode, contentType, body}}]

Pydantic checks the document shape only; range checks belong to the
descriptors and the builder so every failure surfaces as a TopologyError.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .builder import RouterHandle, ServiceHandle, Topology, TopologyBuilder
from .descriptors import (
    DEFAULT_HEALTH_CHECK_PATH,
    DEFAULT_NAMESPACE,
    ClusterDescriptor,
    NetworkDescriptor,
    ServiceDescriptor,
    SubnetConfiguration,
    SubnetType,
)
from .errors import DanglingReferenceError, DeclarationError, NoRouteTargetError
from .gateway import EdgeGatewayBinder, FixedResponse
from .resolver import ResolvedTopology, resolve

logger = logging.getLogger(__name__)


class _Spec(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")


class SubnetSpec(_Spec):
    name: str
    type: SubnetType
    cidr_mask: int = Field(24, alias="cidrMask")


class NetworkSpec(_Spec):
    name: str = "app-vpc"
    cidr: str = "10.0.0.0/16"
    max_azs: int = Field(2, alias="maxAzs")
    nat_gateways: int = Field(0, alias="natGateways")
    subnets: Optional[List[SubnetSpec]] = None


class ClusterSpec(_Spec):
    name: str
    namespace: str = DEFAULT_NAMESPACE
    mesh: Optional[str] = None


class ServiceSpec(_Spec):
    name: str
    image: str
    port: int
    replicas: int = 1
    health_check_path: str = Field(DEFAULT_HEALTH_CHECK_PATH, alias="healthCheckPath")
    env: Dict[str, str] = Field(default_factory=dict)


class EdgeSpec(_Spec):
    source: str = Field(..., alias="from")
    destination: str = Field(..., alias="to")


class MemberSpec(_Spec):
    service: str
    weight: float


class GroupSpec(_Spec):
    virtual_name: str = Field(..., alias="virtualName")
    members: List[MemberSpec] = Field(default_factory=list)


class FunctionProxySpec(_Spec):
    name: Optional[str] = None
    path: str = "/"
    methods: List[str] = Field(default_factory=lambda: ["GET"])


class FixedResponseSpec(_Spec):
    status_code: int = Field(200, alias="statusCode")
    content_type: str = Field("text/plain", alias="contentType")
    body: str = "OK"


class ExposureSpec(_Spec):
    target: str
    port: int = 80
    internet_facing: bool = Field(True, alias="internetFacing")
    health_check_path: Optional[str] = Field(None, alias="healthCheckPath")
    gateway_proxy: bool = Field(False, alias="gatewayProxy")
    function_proxy: Optional[FunctionProxySpec] = Field(None, alias="functionProxy")
    host_headers: List[str] = Field(default_factory=list, alias="hostHeaders")
    fixed_response: Optional[FixedResponseSpec] = Field(None, alias="fixedResponse")


class Declaration(_Spec):
    name: str = "topology"
    network: Optional[NetworkSpec] = None
    cluster: Optional[ClusterSpec] = None
    services: List[ServiceSpec] = Field(default_factory=list)
    edges: List[EdgeSpec] = Field(default_factory=list)
    groups: List[GroupSpec] = Field(default_factory=list)
    exposures: List[ExposureSpec] = Field(default_factory=list)


def parse_declaration(document: Union[str, bytes, Mapping[str, Any], Declaration]) -> Declaration:
    """Parse YAML/JSON text or an already-loaded mapping."""
    if isinstance(document, Declaration):
        return document
    if isinstance(document, (str, bytes)):
        try:
            document = yaml.safe_load(document)
        except yaml.YAMLError as e:
            raise DeclarationError(f"Declaration is not valid YAML/JSON: {e}") from e
    if not isinstance(document, Mapping):
        raise DeclarationError("Declaration must be a mapping at the top level")
    try:
        return Declaration.model_validate(dict(document))
    except ValidationError as e:
        errors = [
            {"loc": ".".join(str(p) for p in err["loc"]), "msg": err["msg"]}
            for err in e.errors()
        ]
        raise DeclarationError(f"Declaration has {len(errors)} shape error(s)", {"errors": errors}) from e


def load_declaration(path: Union[str, Path]) -> Declaration:
    with open(path, "r") as f:
        return parse_declaration(f.read())


def _network_descriptor(spec: NetworkSpec) -> NetworkDescriptor:
    kwargs = dict(name=spec.name, cidr=spec.cidr, max_azs=spec.max_azs, nat_gateways=spec.nat_gateways)
    if spec.subnets is not None:
        kwargs["subnet_configuration"] = tuple(
            SubnetConfiguration(s.name, s.type, s.cidr_mask) for s in spec.subnets
        )
    return NetworkDescriptor(**kwargs)


def _cluster_descriptor(declaration: Declaration) -> Optional[ClusterDescriptor]:
    network = _network_descriptor(declaration.network) if declaration.network else None
    if declaration.cluster is None:
        if network is None:
            return None
        return ClusterDescriptor(name=f"{declaration.name}-cluster", network=network)
    return ClusterDescriptor(
        name=declaration.cluster.name,
        network=network,
        namespace=declaration.cluster.namespace,
        mesh_name=declaration.cluster.mesh,
    )


def _fixed_response(spec: Optional[FixedResponseSpec]) -> Optional[FixedResponse]:
    if spec is None:
        return None
    return FixedResponse(spec.status_code, spec.content_type, spec.body)


def build_from_declaration(
    document: Union[str, bytes, Mapping[str, Any], Declaration],
) -> Tuple[Topology, EdgeGatewayBinder]:
    """Replay a declaration through the builder and the gateway binder."""
    declaration = parse_declaration(document)
    builder = TopologyBuilder(declaration.name, _cluster_descriptor(declaration))

    services: Dict[str, ServiceHandle] = {}
    for spec in declaration.services:
        services[spec.name] = builder.add_service(ServiceDescriptor(
            name=spec.name,
            image=spec.image,
            port=spec.port,
            replicas=spec.replicas,
            health_check_path=spec.health_check_path,
            env=spec.env,
        ))

    def service_ref(name: str, role: str) -> ServiceHandle:
        if name not in services:
            raise DanglingReferenceError(f"{role} {name} is not a declared service",
                                         {"role": role, "service": name})
        return services[name]

    # groups first so edges can target virtual names
    routers: Dict[str, RouterHandle] = {}
    for group in declaration.groups:
        members = [(service_ref(m.service, "Group member"), m.weight) for m in group.members]
        routers[group.virtual_name] = builder.add_weighted_group(group.virtual_name, members)

    for edge in declaration.edges:
        source = service_ref(edge.source, "Edge source")
        destination = routers.get(edge.destination) or service_ref(edge.destination, "Edge destination")
        builder.connect(source, destination)

    topology = builder.build()
    binder = EdgeGatewayBinder(topology)

    for exposure in declaration.exposures:
        if topology.has_group(exposure.target):
            target = topology.router(exposure.target)
        elif topology.has_service(exposure.target):
            target = topology.handle(exposure.target)
        else:
            raise NoRouteTargetError(f"Exposure target {exposure.target} is not declared",
                                     {"target": exposure.target})
        endpoint = binder.expose_publicly(
            target,
            port=exposure.port,
            internet_facing=exposure.internet_facing,
            health_check_path=exposure.health_check_path,
            host_headers=exposure.host_headers,
            fixed_response=_fixed_response(exposure.fixed_response),
        )
        if exposure.gateway_proxy:
            binder.expose_via_gateway_proxy(endpoint)
        if exposure.function_proxy is not None:
            proxy = exposure.function_proxy
            binder.expose_via_function_proxy(target, function_name=proxy.name,
                                             path=proxy.path, methods=proxy.methods)

    logger.info("Declaration %s replayed: %d services, %d edges, %d groups, %d exposures",
                declaration.name, len(declaration.services), len(declaration.edges),
                len(declaration.groups), len(declaration.exposures))
    return topology, binder


def resolve_declaration(
    document: Union[str, bytes, Mapping[str, Any], Declaration],
) -> ResolvedTopology:
    topology, binder = build_from_declaration(document)
    return resolve(topology, binder)
