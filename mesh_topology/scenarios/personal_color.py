from typing import Tuple

from ..topology.builder import Topology, TopologyBuilder
from ..topology.gateway import EdgeGatewayBinder
from .common import app_cluster, app_service, app_vpc, internal_url


def personal_color_mesh(color_v2_weight: int = 0) -> Tuple[Topology, EdgeGatewayBinder]:
    """
    name + color (v1/v2 behind a weighted router) + personal-color.

    personal-color sits behind an internal load balancer that a managed
    HTTP API proxies to, and behind a function proxy calling it by name.
    """
    builder = TopologyBuilder(
        "personal-color",
        app_cluster("personal-color-cluster", app_vpc(), mesh_name="personal-color-mesh"),
    )

    name = builder.add_service(app_service("name", "banvuong/name:demo"))
    color_v1 = builder.add_service(app_service("color", "banvuong/color-v1:demo"))
    color_v2 = builder.add_service(app_service("color-v2", "banvuong/color-v2:demo"))
    personal_color = builder.add_service(app_service(
        "personal-color",
        "banvuong/personal-color:demo",
        env={"NAME_URL": internal_url("name"), "COLOR_URL": internal_url("color")},
    ))

    color = builder.add_weighted_group("color", [(color_v1, 100 - color_v2_weight), (color_v2, color_v2_weight)])

    builder.connect(personal_color, name)
    builder.connect(personal_color, color)

    topology = builder.build()
    binder = EdgeGatewayBinder(topology)
    listener = binder.expose_publicly(topology.handle("personal-color"), port=80, internet_facing=False)
    binder.expose_via_gateway_proxy(listener)
    binder.expose_via_function_proxy(topology.handle("personal-color"),
                                     function_name="personal-color-lambda",
                                     methods=("GET", "POST"))
    return topology, binder
