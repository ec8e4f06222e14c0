from .builder import (
    Edge,
    RouterHandle,
    ServiceHandle,
    Topology,
    TopologyBuilder,
    WeightedGroup,
    normalize_weights,
)
from .declaration import build_from_declaration, load_declaration, parse_declaration, resolve_declaration
from .descriptors import (
    DEFAULT_HEALTH_CHECK_PATH,
    DEFAULT_NAMESPACE,
    ClusterDescriptor,
    NetworkDescriptor,
    ServiceDescriptor,
    SubnetConfiguration,
    SubnetType,
)
from .errors import (
    DanglingReferenceError,
    DeclarationError,
    DuplicateNameError,
    EmptyGroupError,
    InvalidDescriptorError,
    NegativeWeightError,
    NoRouteTargetError,
    SelfLoopError,
    TopologyError,
    UnknownServiceError,
)
from .gateway import EdgeGatewayBinder, ExternalEndpointHandle, FixedResponse, GatewayHandle
from .resolver import ResolvedTopology, resolve
from .validation import TopologyValidator, ValidationReport

__all__ = [
    "ClusterDescriptor",
    "DEFAULT_HEALTH_CHECK_PATH",
    "DEFAULT_NAMESPACE",
    "DanglingReferenceError",
    "DeclarationError",
    "DuplicateNameError",
    "Edge",
    "EdgeGatewayBinder",
    "EmptyGroupError",
    "ExternalEndpointHandle",
    "FixedResponse",
    "GatewayHandle",
    "InvalidDescriptorError",
    "NegativeWeightError",
    "NetworkDescriptor",
    "NoRouteTargetError",
    "ResolvedTopology",
    "RouterHandle",
    "SelfLoopError",
    "ServiceDescriptor",
    "ServiceHandle",
    "SubnetConfiguration",
    "SubnetType",
    "Topology",
    "TopologyBuilder",
    "TopologyError",
    "TopologyValidator",
    "UnknownServiceError",
    "ValidationReport",
    "WeightedGroup",
    "build_from_declaration",
    "load_declaration",
    "normalize_weights",
    "parse_declaration",
    "resolve",
    "resolve_declaration",
]
