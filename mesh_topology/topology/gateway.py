#!/usr/bin/env python3
"""
Edge Gateway Binder

Exposes routable targets of a built Topology to external callers.

Implements:
- Load balancer listeners bound to exactly one target (service or router)
- Managed HTTP API proxying through the private network to a listener
- Managed HTTP API invoking a private function that calls a target by name
- Health-check path registration for every exposed target
- Host-header listener rules with a fixed default response
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple, Union

from .builder import RouterHandle, ServiceHandle, Topology
from .descriptors import DEFAULT_HEALTH_CHECK_PATH, validate_port
from .errors import DuplicateNameError, InvalidDescriptorError, NoRouteTargetError

logger = logging.getLogger(__name__)

TargetHandle = Union[ServiceHandle, RouterHandle]

HOST_HEADER_REGEX = re.compile(r"^[A-Za-z0-9*?.-]+$")


class GatewayKind:
    HTTP_PROXY = "http-proxy"
    FUNCTION_PROXY = "function-proxy"


@dataclass(frozen=True)
class FixedResponse:
    """Answer returned by a listener when no host rule matches."""

    status_code: int = 200
    content_type: str = "text/plain"
    body: str = "OK"


@dataclass(frozen=True)
class ExternalEndpointHandle:
    """A listener bound to one routable target."""

    name: str
    target: str
    target_kind: str
    port: int
    target_port: int
    internet_facing: bool
    health_check_path: str
    topology_id: str
    host_headers: Tuple[str, ...] = ()
    fixed_response: Optional[FixedResponse] = None


@dataclass(frozen=True)
class GatewayHandle:
    name: str
    kind: str
    target: str
    routes: Tuple[str, ...] = ("$default",)
    endpoint: Optional[str] = None
    function_name: Optional[str] = None
    function_env: Tuple[Tuple[str, str], ...] = ()
    cors_methods: Tuple[str, ...] = ()
    topology_id: str = field(default="", repr=False)


class EdgeGatewayBinder:
    """Binds external entrypoints to one Topology."""

    def __init__(self, topology: Topology):
        self.topology = topology
        self._endpoints: Dict[str, ExternalEndpointHandle] = {}
        self._gateways: Dict[str, GatewayHandle] = {}

    def expose_publicly(self, target: TargetHandle, port: int = 80, internet_facing: bool = True,
                        health_check_path: Optional[str] = None,
                        host_headers: Sequence[str] = (),
                        fixed_response: Optional[FixedResponse] = None) -> ExternalEndpointHandle:
        """
        Bind target to a load balancer listener on port.

        With host_headers the listener only forwards matching requests to
        the target; everything else gets fixed_response.
        """
        self._check_target(target)
        if not validate_port(port):
            raise InvalidDescriptorError(f"Invalid listener port for {target.name}: {port}",
                                         {"target": target.name, "port": port})
        if health_check_path is not None and not str(health_check_path).startswith("/"):
            raise InvalidDescriptorError(f"Health check path must start with '/': {health_check_path}",
                                         {"target": target.name})
        host_headers = tuple(host_headers or ())
        self._check_listener_rules(target, host_headers, fixed_response)

        kind = "router" if isinstance(target, RouterHandle) else "service"
        endpoint = ExternalEndpointHandle(
            name=f"{target.name}-lb-{port}",
            target=target.name,
            target_kind=kind,
            port=port,
            target_port=self._target_port(target),
            internet_facing=internet_facing,
            health_check_path=health_check_path or self._health_check_path(target),
            topology_id=self.topology.topology_id,
            host_headers=host_headers,
            fixed_response=fixed_response,
        )
        existing = self._endpoints.get(endpoint.name)
        if existing is not None:
            if existing != endpoint:
                raise DuplicateNameError(
                    f"Listener {endpoint.name} is already bound with different settings",
                    {"endpoint": endpoint.name, "target": existing.target,
                     "target_kind": existing.target_kind},
                )
            return existing

        self._endpoints[endpoint.name] = endpoint
        logger.info("Exposed %s %s on port %s (%s)", kind, target.name, port,
                    "internet-facing" if internet_facing else "internal")
        return endpoint

    def expose_via_gateway_proxy(self, endpoint: ExternalEndpointHandle) -> GatewayHandle:
        """Front a listener with a managed HTTP API over the private network."""
        if not isinstance(endpoint, ExternalEndpointHandle) or self._endpoints.get(endpoint.name) != endpoint:
            raise NoRouteTargetError(f"Endpoint {getattr(endpoint, 'name', endpoint)!r} is not bound by this gateway",
                                     {"topology": self.topology.name})

        name = f"{endpoint.target}-http-proxy"
        existing = self._gateways.get(name)
        if existing is not None:
            if existing.endpoint != endpoint.name:
                raise DuplicateNameError(f"Gateway proxy {name} already fronts {existing.endpoint}",
                                         {"gateway": name, "endpoint": existing.endpoint})
            return existing

        gateway = GatewayHandle(
            name=name,
            kind=GatewayKind.HTTP_PROXY,
            target=endpoint.target,
            endpoint=endpoint.name,
            topology_id=self.topology.topology_id,
        )
        self._gateways[name] = gateway
        logger.info("Proxying HTTP API %s to %s", name, endpoint.name)
        return gateway

    def expose_via_function_proxy(self, target: TargetHandle, function_name: Optional[str] = None,
                                  path: str = "/", methods: Sequence[str] = ("GET",)) -> GatewayHandle:
        """Front target with an HTTP API invoking a function inside the private subnets."""
        self._check_target(target)
        if not path.startswith("/"):
            raise InvalidDescriptorError(f"Route path must start with '/': {path}", {"target": target.name})

        function_name = function_name or f"{target.name}-function"
        name = f"{function_name}-api"
        existing = self._gateways.get(name)
        if existing is not None:
            if existing.target != target.name or existing.routes != (path,):
                raise DuplicateNameError(f"Function proxy {name} is already bound to {existing.target}",
                                         {"gateway": name, "target": existing.target})
            return existing

        env_key = target.name.upper().replace("-", "_") + "_URL"
        url = f"http://{self.topology.discovery_name(target.name)}:{self._target_port(target)}"
        gateway = GatewayHandle(
            name=name,
            kind=GatewayKind.FUNCTION_PROXY,
            target=target.name,
            routes=(path,),
            function_name=function_name,
            function_env=((env_key, url),),
            cors_methods=tuple(m.upper() for m in methods) + ("OPTIONS",),
            topology_id=self.topology.topology_id,
        )
        self._gateways[name] = gateway
        logger.info("Function proxy %s calls %s", function_name, url)
        return gateway

    @property
    def endpoints(self) -> List[ExternalEndpointHandle]:
        return list(self._endpoints.values())

    @property
    def gateways(self) -> List[GatewayHandle]:
        return list(self._gateways.values())

    def bindings(self) -> Tuple[Tuple[ExternalEndpointHandle, ...], Tuple[GatewayHandle, ...]]:
        return tuple(self._endpoints.values()), tuple(self._gateways.values())

    def _check_target(self, target):
        if not isinstance(target, (ServiceHandle, RouterHandle)) or not self.topology.contains(target):
            raise NoRouteTargetError(f"{target!r} is not a routable target of {self.topology.name}",
                                     {"topology": self.topology.name})

    @staticmethod
    def _check_listener_rules(target: TargetHandle, host_headers: Tuple[str, ...],
                              fixed_response: Optional[FixedResponse]):
        for host in host_headers:
            if not isinstance(host, str) or not HOST_HEADER_REGEX.match(host):
                raise InvalidDescriptorError(f"Invalid host header pattern for {target.name}: {host!r}",
                                             {"target": target.name})
        if fixed_response is None:
            return
        if not host_headers:
            # without host rules every request is forwarded to the target
            raise InvalidDescriptorError(f"Fixed response for {target.name} needs host header rules",
                                         {"target": target.name})
        status = fixed_response.status_code
        if isinstance(status, bool) or not isinstance(status, int) or not 200 <= status <= 599:
            raise InvalidDescriptorError(f"Invalid fixed response status for {target.name}: {status}",
                                         {"target": target.name})

    def _target_port(self, target: TargetHandle) -> int:
        if isinstance(target, RouterHandle):
            first = self.topology.group(target.virtual_name).targets[0]
            return self.topology.service(first.service).port
        return self.topology.service(target.name).port

    def _health_check_path(self, target: TargetHandle) -> str:
        if isinstance(target, ServiceHandle):
            return self.topology.service(target.name).health_check_path
        paths = {self.topology.service(m).health_check_path
                 for m in self.topology.group(target.virtual_name).members}
        return paths.pop() if len(paths) == 1 else DEFAULT_HEALTH_CHECK_PATH
