from typing import Tuple

from ..topology.builder import Topology, TopologyBuilder
from ..topology.gateway import EdgeGatewayBinder, FixedResponse
from .common import app_cluster, app_service, app_vpc


def color_rolling_release(replicas: int = 2) -> Tuple[Topology, EdgeGatewayBinder]:
    """
    A single color service on a public load balancer gated by /health.

    Only color.* hosts reach the service; other requests get a plain 200 OK.
    """
    builder = TopologyBuilder("color-rolling-release", app_cluster("color-cluster", app_vpc()))
    color = builder.add_service(app_service("color", "banvuong/color-v1:demo", replicas=replicas))

    topology = builder.build()
    binder = EdgeGatewayBinder(topology)
    binder.expose_publicly(
        color,
        port=80,
        internet_facing=True,
        health_check_path="/health",
        host_headers=("color.*",),
        fixed_response=FixedResponse(200, "text/plain", "OK"),
    )
    return topology, binder
