from typing import Tuple

from ..topology.builder import Topology, TopologyBuilder
from ..topology.gateway import EdgeGatewayBinder
from ..topology.descriptors import NetworkDescriptor
from .common import app_cluster, app_service, internal_url


def greeter_mesh() -> Tuple[Topology, EdgeGatewayBinder]:
    """greeter calls name and greeting; an HTTP API proxies to the greeter listener."""
    network = NetworkDescriptor(name="greeting-vpc", max_azs=1, nat_gateways=0)
    builder = TopologyBuilder("greeting", app_cluster("greeting-cluster", network, mesh_name="greeting-app-mesh"))

    name = builder.add_service(app_service("name", "nathanpeck/name", health_check_path="/"))
    greeting = builder.add_service(app_service("greeting", "nathanpeck/greeting", health_check_path="/"))
    greeter = builder.add_service(app_service(
        "greeter",
        "nathanpeck/greeter",
        env={"GREETING_URL": internal_url("greeting"), "NAME_URL": internal_url("name")},
        health_check_path="/",
    ))
    builder.connect(greeter, name)
    builder.connect(greeter, greeting)

    topology = builder.build()
    binder = EdgeGatewayBinder(topology)
    listener = binder.expose_publicly(topology.handle("greeter"), port=80, internet_facing=False)
    binder.expose_via_gateway_proxy(listener)
    return topology, binder
