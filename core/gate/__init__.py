"""Plan gate for paid capabilities."""

from core.gate.plan_gate import Capability, GateDecision, PlanGate, evaluate_plan

__all__ = ["Capability", "GateDecision", "PlanGate", "evaluate_plan"]
