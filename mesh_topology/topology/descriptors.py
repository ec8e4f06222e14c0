#!/usr/bin/env python3
"""
Topology Descriptors

Static descriptions of the pieces a topology is assembled from:
- Network: an isolated address space carved into public/private subnets
- Cluster: a compute pool bound to a network and a private naming scope
- Service: one deployable unit (image, port, replicas, health check, env)

Descriptors only describe. Validation helpers return a list of problems,
in the same way the load balancer config validator does.
"""

import ipaddress
import re
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, List, Mapping, Optional, Tuple

from .errors import InvalidDescriptorError

DEFAULT_HEALTH_CHECK_PATH = "/health"
DEFAULT_NAMESPACE = "internal"

# Service names end up as DNS labels in the naming scope
SAFE_NAME_REGEX = re.compile(r"^[a-z0-9]([a-z0-9-]*[a-z0-9])?$")
ENV_KEY_REGEX = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
MAX_NAME_LENGTH = 63


def is_safe_name(name: Any) -> bool:
    """Check if a name can be used as a DNS label in the naming scope."""
    return (
        isinstance(name, str)
        and len(name) <= MAX_NAME_LENGTH
        and SAFE_NAME_REGEX.match(name) is not None
    )


def validate_port(port: Any) -> bool:
    """Validate that a port is an integer between 1 and 65535."""
    return isinstance(port, int) and not isinstance(port, bool) and 0 < port <= 65535


class SubnetType(Enum):
    PUBLIC = "public"
    PRIVATE = "private"


@dataclass(frozen=True)
class SubnetConfiguration:
    """One subnet tier, repeated in every availability zone."""

    name: str
    subnet_type: SubnetType
    cidr_mask: int = 24


@dataclass(frozen=True)
class Subnet:
    name: str
    subnet_type: SubnetType
    cidr: str
    availability_zone: int

    @property
    def gateway(self) -> str:
        return str(next(ipaddress.ip_network(self.cidr).hosts()))


DEFAULT_SUBNET_CONFIGURATION: Tuple[SubnetConfiguration, ...] = (
    SubnetConfiguration("public", SubnetType.PUBLIC, 24),
    SubnetConfiguration("private", SubnetType.PRIVATE, 24),
)


@dataclass(frozen=True)
class NetworkDescriptor:
    """
    An isolated address space.

    Subnets are allocated sequentially: every configuration tier gets one
    block per availability zone, tiers in declaration order.
    """

    name: str
    cidr: str = "10.0.0.0/16"
    max_azs: int = 2
    subnet_configuration: Tuple[SubnetConfiguration, ...] = DEFAULT_SUBNET_CONFIGURATION
    nat_gateways: int = 0

    def validate(self) -> List[str]:
        errors = self._validate_layout()
        if errors:
            return errors
        try:
            self._allocate()
        except InvalidDescriptorError as e:
            errors.append(e.message)
        return errors

    def _validate_layout(self) -> List[str]:
        errors = []
        try:
            network = ipaddress.ip_network(self.cidr)
        except ValueError:
            return [f"Invalid CIDR for network {self.name}: {self.cidr}"]
        if not isinstance(self.max_azs, int) or self.max_azs < 1:
            errors.append(f"max_azs must be at least 1 for network {self.name}")
        if not self.subnet_configuration:
            errors.append(f"Network {self.name} declares no subnets")
        for config in self.subnet_configuration:
            if not network.prefixlen < config.cidr_mask <= network.max_prefixlen:
                errors.append(
                    f"Subnet {config.name} mask /{config.cidr_mask} does not fit in {self.cidr}"
                )
        if self.nat_gateways < 0:
            errors.append(f"nat_gateways cannot be negative for network {self.name}")
        return errors

    def subnets(self) -> List[Subnet]:
        """Carve concrete subnets out of the address space."""
        errors = self._validate_layout()
        if errors:
            raise InvalidDescriptorError("; ".join(errors), {"network": self.name})
        return self._allocate()

    def _allocate(self) -> List[Subnet]:
        network = ipaddress.ip_network(self.cidr)
        allocated: List[Subnet] = []
        cursor = int(network.network_address)
        end = int(network.broadcast_address)
        for config in self.subnet_configuration:
            block_size = 2 ** (network.max_prefixlen - config.cidr_mask)
            for az in range(self.max_azs):
                # align to the block boundary of this mask
                if cursor % block_size:
                    cursor += block_size - cursor % block_size
                if cursor + block_size - 1 > end:
                    raise InvalidDescriptorError(
                        f"Address space {self.cidr} exhausted while allocating {config.name}",
                        {"network": self.name, "subnet": config.name, "az": az},
                    )
                block = type(network)((cursor, config.cidr_mask))
                allocated.append(Subnet(
                    name=f"{config.name}-{az + 1}",
                    subnet_type=config.subnet_type,
                    cidr=str(block),
                    availability_zone=az,
                ))
                cursor += block_size
        return allocated

    def subnets_of(self, subnet_type: SubnetType) -> List[Subnet]:
        return [s for s in self.subnets() if s.subnet_type == subnet_type]


@dataclass(frozen=True)
class ClusterDescriptor:
    """A compute pool bound to a network and a private naming scope."""

    name: str
    network: Optional[NetworkDescriptor] = None
    namespace: str = DEFAULT_NAMESPACE
    mesh_name: Optional[str] = None

    def validate(self) -> List[str]:
        errors = []
        if not is_safe_name(self.name):
            errors.append(f"Invalid cluster name: {self.name}")
        if not is_safe_name(self.namespace):
            errors.append(f"Invalid namespace for cluster {self.name}: {self.namespace}")
        if self.mesh_name is not None and not is_safe_name(self.mesh_name):
            errors.append(f"Invalid mesh name for cluster {self.name}: {self.mesh_name}")
        if self.network is not None:
            errors.extend(self.network.validate())
        return errors


@dataclass(frozen=True)
class ServiceDescriptor:
    """One deployable unit, registered under its name in the naming scope."""

    name: str
    image: str
    port: int
    replicas: int = 1
    health_check_path: str = DEFAULT_HEALTH_CHECK_PATH
    env: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        # frozen view so a declared service cannot drift after the fact
        object.__setattr__(self, "env", MappingProxyType(dict(self.env or {})))

    def __hash__(self):
        return hash((self.name, self.image, self.port, self.replicas, self.health_check_path,
                     tuple(sorted(self.env.items(), key=lambda item: str(item[0])))))

    def validate(self) -> List[str]:
        errors = []
        if not is_safe_name(self.name):
            errors.append(f"Invalid service name: {self.name!r}")
        if not isinstance(self.image, str) or not self.image.strip():
            errors.append(f"Missing image for service {self.name}")
        if not validate_port(self.port):
            errors.append(f"Invalid port for service {self.name}: {self.port}")
        if not isinstance(self.replicas, int) or isinstance(self.replicas, bool) or self.replicas < 1:
            errors.append(f"Replica count for service {self.name} must be at least 1: {self.replicas}")
        if not isinstance(self.health_check_path, str) or not self.health_check_path.startswith("/"):
            errors.append(f"Health check path for service {self.name} must start with '/': {self.health_check_path}")
        for key, value in self.env.items():
            if not isinstance(key, str) or not ENV_KEY_REGEX.match(key):
                errors.append(f"Invalid environment variable name for service {self.name}: {key!r}")
            if not isinstance(value, str):
                errors.append(f"Environment variable {key} for service {self.name} must be a string")
        return errors

    def validated(self) -> "ServiceDescriptor":
        errors = self.validate()
        if errors:
            raise InvalidDescriptorError("; ".join(errors), {"service": self.name, "errors": errors})
        return self
