from .plan_renderer import PlanRenderer, render_plan

__all__ = ["PlanRenderer", "render_plan"]
