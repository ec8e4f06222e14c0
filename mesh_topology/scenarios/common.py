# mesh_topology/scenarios/common.py
from typing import Dict, Optional

from ..topology.descriptors import (
    ClusterDescriptor,
    NetworkDescriptor,
    ServiceDescriptor,
    SubnetConfiguration,
    SubnetType,
)

APP_PORT = 3000
PRIVATE_NAMESPACE = "internal"


def app_vpc(name: str = "app-vpc", max_azs: int = 2) -> NetworkDescriptor:
    """10.0.0.0/16 with one public and one private /24 per AZ, no NAT gateways."""
    return NetworkDescriptor(
        name=name,
        cidr="10.0.0.0/16",
        max_azs=max_azs,
        subnet_configuration=(
            SubnetConfiguration("public", SubnetType.PUBLIC, 24),
            SubnetConfiguration("private", SubnetType.PRIVATE, 24),
        ),
        nat_gateways=0,
    )


def app_cluster(name: str, network: NetworkDescriptor, mesh_name: Optional[str] = None) -> ClusterDescriptor:
    return ClusterDescriptor(name=name, network=network, namespace=PRIVATE_NAMESPACE, mesh_name=mesh_name)


def internal_url(name: str, port: int = APP_PORT) -> str:
    return f"http://{name}.{PRIVATE_NAMESPACE}:{port}"


def app_service(name: str, image: str, env: Optional[Dict[str, str]] = None,
                replicas: int = 1, health_check_path: str = "/health") -> ServiceDescriptor:
    environment = {"PORT": str(APP_PORT)}
    environment.update(env or {})
    return ServiceDescriptor(
        name=name,
        image=image,
        port=APP_PORT,
        replicas=replicas,
        health_check_path=health_check_path,
        env=environment,
    )
