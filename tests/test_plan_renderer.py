"""Tests for the text plan renderer"""

import pytest

from mesh_topology.render import PlanRenderer, render_plan
from mesh_topology.scenarios import color_rolling_release, personal_color_mesh
from mesh_topology.topology.resolver import resolve


@pytest.fixture
def plan():
    return render_plan(resolve(*personal_color_mesh(color_v2_weight=10)))


class TestPlanRenderer:
    def test_header(self, plan):
        assert plan.splitlines()[0] == (
            "topology personal-color (namespace internal, cluster personal-color-cluster)"
        )

    def test_network(self, plan):
        assert "network app-vpc 10.0.0.0/16 azs=2 nat=0" in plan
        assert "  subnet public-1 public 10.0.0.0/24 gw 10.0.0.1" in plan
        assert "  subnet private-2 private 10.0.3.0/24 gw 10.0.3.1" in plan

    def test_services(self, plan):
        assert (
            "  personal-color.internal:3000 image=banvuong/personal-color:demo replicas=1 health=/health"
            in plan
        )
        assert "    env COLOR_URL=http://color.internal:3000" in plan
        assert "    -> http://name.internal:3000" in plan

    def test_routes(self, plan):
        assert "  color color=90% color-v2=10%" in plan.splitlines()

    def test_gateways(self, plan):
        assert "  listener personal-color-lb-80 :80 -> personal-color:3000 internal health=/health" in plan
        assert "  http-proxy personal-color-http-proxy -> personal-color-lb-80 $default" in plan.splitlines()
        assert "  function-proxy personal-color-lambda-api -> personal-color-lambda /" in plan.splitlines()

    def test_ingress(self, plan):
        assert "  allow tcp/3000 personal-color -> color-v2" in plan.splitlines()
        assert "  allow tcp/3000 personal-color-lb-80 -> personal-color" in plan.splitlines()

    def test_mesh(self, plan):
        assert "mesh personal-color-mesh:" in plan.splitlines()
        assert "  router color-router color=90 color-v2=10" in plan.splitlines()
        assert (
            "  node personal-color listener http/3000 backends name.internal, color.internal"
            in plan.splitlines()
        )

    def test_without_mesh_or_routes(self):
        plan = render_plan(resolve(*color_rolling_release()))
        lines = plan.splitlines()
        assert not any(line.startswith("mesh ") for line in lines)
        assert "routes:" not in lines
        assert (
            "  listener color-lb-80 :80 -> color:3000 internet-facing health=/health"
            " hosts=color.* default=200 text/plain"
        ) in lines

    def test_custom_template(self):
        renderer = PlanRenderer("{{ name }}: {{ services | length }} services")
        assert renderer.render(resolve(*color_rolling_release())) == "color-rolling-release: 1 services"
