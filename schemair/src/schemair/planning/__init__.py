"""Component planning."""

from .planner import PlanningError, PlanningIssue, check_components, plan_components

__all__ = ["PlanningError", "PlanningIssue", "check_components", "plan_components"]
