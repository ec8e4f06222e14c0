#!/usr/bin/env python3
"""
Topology Builder

Declares services, backend edges and weighted routers inside one naming
scope, then freezes them into an immutable Topology.

Implements:
- Service registration with duplicate-name detection
- Idempotent directed edges (caller -> callee)
- Weighted fan-out routers with weights normalized to 100
- All-or-nothing build: a failed call leaves the builder untouched
"""

import logging
import math
import uuid
from dataclasses import dataclass
from fractions import Fraction
from typing import Dict, List, Optional, Sequence, Tuple, Union

from .descriptors import DEFAULT_NAMESPACE, ClusterDescriptor, ServiceDescriptor
from .errors import (
    DanglingReferenceError,
    DuplicateNameError,
    EmptyGroupError,
    InvalidDescriptorError,
    NegativeWeightError,
    SelfLoopError,
    UnknownServiceError,
)

logger = logging.getLogger(__name__)

TOTAL_WEIGHT = 100


@dataclass(frozen=True)
class ServiceHandle:
    """Reference to a service declared in a specific topology."""

    name: str
    topology_id: str


@dataclass(frozen=True)
class RouterHandle:
    """Reference to the aggregate entrypoint of a weighted group."""

    virtual_name: str
    topology_id: str

    @property
    def name(self) -> str:
        return self.virtual_name


TargetHandle = Union[ServiceHandle, RouterHandle]


class EdgeKind:
    SERVICE = "service"
    ROUTER = "router"


@dataclass(frozen=True)
class Edge:
    source: str
    destination: str
    destination_kind: str = EdgeKind.SERVICE


@dataclass(frozen=True)
class WeightedTarget:
    service: str
    weight: int
    declared_weight: float


@dataclass(frozen=True)
class WeightedGroup:
    virtual_name: str
    targets: Tuple[WeightedTarget, ...]

    @property
    def members(self) -> List[str]:
        return [t.service for t in self.targets]


def normalize_weights(weights: Sequence[float]) -> List[int]:
    """
    Scale weights to integers summing to 100.

    Uses largest remainder; equal remainders go to the earlier member.
    All-zero weights are split evenly.
    Example: [1, 1, 2] -> [25, 25, 50]
    Example: [1, 1, 1] -> [34, 33, 33]
    """
    if not weights:
        return []
    exact = [Fraction(str(w)) for w in weights]
    total = sum(exact)
    if total == 0:
        exact = [Fraction(1)] * len(weights)
        total = Fraction(len(weights))

    shares = [w * TOTAL_WEIGHT / total for w in exact]
    floors = [math.floor(share) for share in shares]
    leftover = TOTAL_WEIGHT - sum(floors)
    order = sorted(range(len(shares)), key=lambda i: (-(shares[i] - floors[i]), i))
    for i in order[:leftover]:
        floors[i] += 1
    return [int(f) for f in floors]


class Topology:
    """
    Immutable snapshot of a declared topology.

    Produced once by TopologyBuilder.build(); read by the gateway binder and
    the resolver, never mutated.
    """

    def __init__(
        self,
        name: str,
        topology_id: str,
        namespace: str,
        services: Tuple[ServiceDescriptor, ...],
        edges: Tuple[Edge, ...],
        groups: Tuple[WeightedGroup, ...],
        cluster: Optional[ClusterDescriptor] = None,
    ):
        self._name = name
        self._topology_id = topology_id
        self._namespace = namespace
        self._services = services
        self._edges = edges
        self._groups = groups
        self._cluster = cluster
        self._by_name = {s.name: s for s in services}
        self._groups_by_name = {g.virtual_name: g for g in groups}

    @property
    def name(self) -> str:
        return self._name

    @property
    def topology_id(self) -> str:
        return self._topology_id

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def cluster(self) -> Optional[ClusterDescriptor]:
        return self._cluster

    @property
    def services(self) -> Tuple[ServiceDescriptor, ...]:
        return self._services

    @property
    def edges(self) -> Tuple[Edge, ...]:
        return self._edges

    @property
    def groups(self) -> Tuple[WeightedGroup, ...]:
        return self._groups

    def service(self, name: str) -> ServiceDescriptor:
        try:
            return self._by_name[name]
        except KeyError:
            raise UnknownServiceError(f"Service {name} is not declared in {self._name}",
                                      {"service": name}) from None

    def group(self, virtual_name: str) -> WeightedGroup:
        try:
            return self._groups_by_name[virtual_name]
        except KeyError:
            raise UnknownServiceError(f"Weighted group {virtual_name} is not declared in {self._name}",
                                      {"virtual_name": virtual_name}) from None

    def has_service(self, name: str) -> bool:
        return name in self._by_name

    def has_group(self, virtual_name: str) -> bool:
        return virtual_name in self._groups_by_name

    def contains(self, handle) -> bool:
        """True if the handle was issued for this topology and is declared in it."""
        if getattr(handle, "topology_id", None) != self._topology_id:
            return False
        if isinstance(handle, ServiceHandle):
            return self.has_service(handle.name)
        if isinstance(handle, RouterHandle):
            return self.has_group(handle.virtual_name)
        return False

    def handle(self, name: str) -> ServiceHandle:
        return ServiceHandle(self.service(name).name, self._topology_id)

    def router(self, virtual_name: str) -> RouterHandle:
        return RouterHandle(self.group(virtual_name).virtual_name, self._topology_id)

    def discovery_name(self, name: str) -> str:
        return f"{name}.{self._namespace}"

    def backends_of(self, name: str) -> List[Edge]:
        return [e for e in self._edges if e.source == name]

    def callers_of(self, name: str) -> List[Edge]:
        return [e for e in self._edges if e.destination == name]

    def __repr__(self):
        return (f"Topology(name={self._name!r}, services={len(self._services)}, "
                f"edges={len(self._edges)}, groups={len(self._groups)})")


class TopologyBuilder:
    """
    Declares a topology within one naming scope.

    Every operation validates completely before touching state, so a failed
    call leaves the builder exactly as it was.
    """

    def __init__(self, name: str, cluster: Optional[ClusterDescriptor] = None):
        if cluster is not None:
            errors = cluster.validate()
            if errors:
                raise InvalidDescriptorError("; ".join(errors), {"cluster": cluster.name})
        self.name = name
        self.cluster = cluster
        self.namespace = cluster.namespace if cluster else DEFAULT_NAMESPACE
        self.topology_id = f"topo-{uuid.uuid4().hex[:8]}"
        self._services: Dict[str, ServiceDescriptor] = {}
        self._edges: Dict[Tuple[str, str], Edge] = {}
        self._groups: Dict[str, List[Tuple[str, float]]] = {}

    # Services

    def add_service(self, descriptor: ServiceDescriptor) -> ServiceHandle:
        descriptor.validated()
        name = descriptor.name
        if name in self._services:
            raise DuplicateNameError(f"Service {name} already exists in {self.namespace}",
                                     {"service": name, "namespace": self.namespace})
        if name in self._groups:
            raise DuplicateNameError(f"{name} is already a virtual name in {self.namespace}",
                                     {"service": name, "namespace": self.namespace})

        self._services[name] = descriptor
        logger.debug("Added service %s (%s:%s)", name, descriptor.image, descriptor.port)
        return ServiceHandle(name, self.topology_id)

    def service_handle(self, name: str) -> ServiceHandle:
        if name not in self._services:
            raise UnknownServiceError(f"Service {name} is not declared in {self.name}", {"service": name})
        return ServiceHandle(name, self.topology_id)

    def router_handle(self, virtual_name: str) -> RouterHandle:
        if virtual_name not in self._groups:
            raise UnknownServiceError(f"Weighted group {virtual_name} is not declared in {self.name}",
                                      {"virtual_name": virtual_name})
        return RouterHandle(virtual_name, self.topology_id)

    # Edges

    def connect(self, source: ServiceHandle, destination: TargetHandle) -> None:
        """Allow source to call destination. Connecting twice is a no-op."""
        self._check_service_handle(source, "source")
        if isinstance(destination, RouterHandle):
            self._check_router_handle(destination)
        else:
            self._check_service_handle(destination, "destination")

        # a router shadows the same-named service in the naming scope
        if destination.name in self._groups:
            kind = EdgeKind.ROUTER
            members = [service for service, _ in self._groups[destination.name]]
        else:
            kind = EdgeKind.SERVICE
            members = []
        self._check_self_loop(source.name, destination.name, members)

        key = (source.name, destination.name)
        if key in self._edges:
            logger.debug("Edge %s -> %s already declared", *key)
            return
        self._edges[key] = Edge(source.name, destination.name, kind)
        logger.debug("Connected %s -> %s", *key)

    # Weighted groups

    def add_weighted_group(self, virtual_name: str,
                           members: Sequence[Tuple[ServiceHandle, float]]) -> RouterHandle:
        members = list(members or [])
        if not members:
            raise EmptyGroupError(f"Weighted group {virtual_name} has no members",
                                  {"virtual_name": virtual_name})
        if not isinstance(virtual_name, str) or not virtual_name:
            raise InvalidDescriptorError(f"Invalid virtual name: {virtual_name!r}",
                                         {"virtual_name": virtual_name})

        seen = set()
        for handle, weight in members:
            self._check_service_handle(handle, "member")
            if handle.name in seen:
                raise DuplicateNameError(f"Service {handle.name} listed twice in {virtual_name}",
                                         {"virtual_name": virtual_name, "service": handle.name})
            seen.add(handle.name)
            if isinstance(weight, bool) or not isinstance(weight, (int, float)) or not math.isfinite(weight):
                raise InvalidDescriptorError(f"Invalid weight for {handle.name} in {virtual_name}: {weight!r}",
                                             {"virtual_name": virtual_name, "service": handle.name})
            if weight < 0:
                raise NegativeWeightError(f"Weight for {handle.name} in {virtual_name} is negative: {weight}",
                                          {"virtual_name": virtual_name, "service": handle.name,
                                           "weight": weight})

        if virtual_name in self._groups:
            raise DuplicateNameError(f"Weighted group {virtual_name} already exists",
                                     {"virtual_name": virtual_name})
        if virtual_name in self._services and virtual_name not in seen:
            # a same-named service routed outside the group would be shadowed
            raise DuplicateNameError(f"{virtual_name} is a service routed outside this group",
                                     {"virtual_name": virtual_name})

        # edges already declared to the shadowed service now go through the router
        shadowed = [key for key, edge in self._edges.items() if edge.destination == virtual_name]
        for key in shadowed:
            self._check_self_loop(key[0], virtual_name, seen)

        self._groups[virtual_name] = [(handle.name, weight) for handle, weight in members]
        for key in shadowed:
            self._edges[key] = Edge(key[0], virtual_name, EdgeKind.ROUTER)
        logger.debug("Added weighted group %s over %s", virtual_name, sorted(seen))
        return RouterHandle(virtual_name, self.topology_id)

    # Build

    def build(self) -> Topology:
        """Freeze the declaration into an immutable Topology."""
        for edge in self._edges.values():
            if edge.source not in self._services:
                raise DanglingReferenceError(f"Edge source {edge.source} is not declared",
                                             {"edge": [edge.source, edge.destination]})
            known = self._groups if edge.destination_kind == EdgeKind.ROUTER else self._services
            if edge.destination not in known:
                raise DanglingReferenceError(f"Edge destination {edge.destination} is not declared",
                                             {"edge": [edge.source, edge.destination]})
        for virtual_name, members in self._groups.items():
            for service, _ in members:
                if service not in self._services:
                    raise DanglingReferenceError(f"Group {virtual_name} member {service} is not declared",
                                                 {"virtual_name": virtual_name, "service": service})

        groups = []
        for virtual_name, members in self._groups.items():
            normalized = normalize_weights([w for _, w in members])
            groups.append(WeightedGroup(
                virtual_name=virtual_name,
                targets=tuple(
                    WeightedTarget(service, weight, declared)
                    for (service, declared), weight in zip(members, normalized)
                ),
            ))

        topology = Topology(
            name=self.name,
            topology_id=self.topology_id,
            namespace=self.namespace,
            services=tuple(self._services.values()),
            edges=tuple(self._edges.values()),
            groups=tuple(groups),
            cluster=self.cluster,
        )
        logger.info("Built %r", topology)
        return topology

    # Helpers

    def _check_service_handle(self, handle, role: str):
        if (not isinstance(handle, ServiceHandle)
                or handle.topology_id != self.topology_id
                or handle.name not in self._services):
            raise UnknownServiceError(f"{role.capitalize()} {handle!r} is not a service of {self.name}",
                                      {"role": role, "topology": self.name})

    @staticmethod
    def _check_self_loop(source: str, destination: str, members=()):
        if source == destination or source in members:
            raise SelfLoopError(f"Service {source} cannot be its own backend through {destination}",
                                {"service": source, "destination": destination})

    def _check_router_handle(self, handle: RouterHandle):
        if handle.topology_id != self.topology_id or handle.virtual_name not in self._groups:
            raise UnknownServiceError(f"Router {handle!r} is not part of {self.name}",
                                      {"role": "destination", "topology": self.name})
