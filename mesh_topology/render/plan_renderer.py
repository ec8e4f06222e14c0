#!/usr/bin/env python3
"""
Topology Plan Renderer

Renders a resolved topology as a text plan for review before the
provisioning platform converges on it. Template-based, one section per
resource family:
- Network and subnets
- Services and backends
- Weighted routes
- Gateways and ingress rules
- Mesh resources
"""

from typing import Any, Dict

from jinja2 import Environment, StrictUndefined

from ..topology.resolver import ResolvedTopology

PLAN_TEMPLATE = """\
topology {{ name }} (namespace {{ namespace }}{% if cluster %}, cluster {{ cluster }}{% endif %})
{% if network %}
network {{ network.name }} {{ network.cidr }} azs={{ network.max_azs }} nat={{ network.nat_gateways }}
{% for subnet in network.subnets %}
  subnet {{ subnet.name }} {{ subnet.type }} {{ subnet.cidr }} gw {{ subnet.gateway }}
{% endfor %}
{% endif %}
services:
{% for service in services %}
  {{ service.discovery_name }}:{{ service.port }} image={{ service.image }} replicas={{ service.replicas }} health={{ service.health_check_path }}
{% for key, value in service.env | dictsort %}
    env {{ key }}={{ value }}
{% endfor %}
{% for backend in service.backends %}
    -> {{ backend }}
{% endfor %}
{% endfor %}
{% if routing_table %}
routes:
{% for virtual_name, targets in routing_table | dictsort %}
  {{ virtual_name }}{% for target in targets %} {{ target.service }}={{ target.weight }}%{% endfor %}

{% endfor %}
{% endif %}
{% if gateways.endpoints or gateways.proxies %}
gateways:
{% for endpoint in gateways.endpoints %}
  listener {{ endpoint.name }} :{{ endpoint.port }} -> {{ endpoint.target }}:{{ endpoint.target_port }} {{ "internet-facing" if endpoint.internet_facing else "internal" }} health={{ endpoint.health_check_path }}{% if endpoint.host_headers %} hosts={{ endpoint.host_headers | join(",") }}{% endif %}{% if endpoint.fixed_response %} default={{ endpoint.fixed_response.status_code }} {{ endpoint.fixed_response.content_type }}{% endif %}

{% endfor %}
{% for proxy in gateways.proxies %}
  {{ proxy.kind }} {{ proxy.name }} -> {{ proxy.endpoint or proxy.function_name }}{% for route in proxy.routes %} {{ route }}{% endfor %}

{% endfor %}
{% endif %}
ingress:
{% for rule in ingress_rules %}
  allow {{ rule.protocol }}/{{ rule.port }} {{ rule.source }} -> {{ rule.destination }}
{% endfor %}
{% if mesh %}
mesh {{ mesh.name }}:
{% for node in mesh.virtual_nodes %}
  node {{ node.name }} listener {{ node.listener.protocol }}/{{ node.listener.port }}{% if node.backends %} backends {{ node.backends | join(", ") }}{% endif %}

{% endfor %}
{% for router in mesh.virtual_routers %}
  router {{ router.name }}{% for route in router.routes %}{% for target in route.weighted_targets %} {{ target.virtual_node }}={{ target.weight }}{% endfor %}{% endfor %}

{% endfor %}
{% endif %}
"""


class PlanRenderer:
    """Renders resolved topologies through a Jinja2 template."""

    def __init__(self, template: str = PLAN_TEMPLATE):
        self.env = Environment(trim_blocks=True, lstrip_blocks=True, undefined=StrictUndefined)
        self.template = self.env.from_string(template)

    def render(self, topology: ResolvedTopology) -> str:
        return self.render_dict(topology.to_dict())

    def render_dict(self, data: Dict[str, Any]) -> str:
        return self.template.render(**data)


def render_plan(topology: ResolvedTopology) -> str:
    return PlanRenderer().render(topology)
