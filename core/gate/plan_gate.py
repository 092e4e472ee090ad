"""Quota/plan gate consulted before any paid provider call.

``authorize`` is a pure predicate: it reads the plan and never touches usage
counters. Any ambiguity fails closed.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from core.errors import AuthorizationDenied, DenialReason
from core.storage.models import PlanTier, UserPlan
from core.storage.plan_repository import PlanRepository

logger = logging.getLogger("pactwise.plan_gate")


class Capability(str, Enum):
    ANALYSIS = "analysis"
    GENERAL_CHAT = "general_chat"
    GROUNDED_CHAT = "grounded_chat"


# Minimum plan tier per capability. Free-tier capabilities are metered by quota.
REQUIRED_TIER: dict[Capability, PlanTier] = {
    Capability.ANALYSIS: PlanTier.FREE,
    Capability.GENERAL_CHAT: PlanTier.PREMIUM,
    Capability.GROUNDED_CHAT: PlanTier.PREMIUM,
}

DENIAL_MESSAGES: dict[DenialReason, str] = {
    DenialReason.PLAN_NOT_FOUND: "No plan found for this account.",
    DenialReason.UPGRADE_REQUIRED: "Upgrade to premium to use chat.",
    DenialReason.QUOTA_EXCEEDED: "Free analysis quota used up. Upgrade to premium to continue.",
}


@dataclass(frozen=True)
class GateDecision:
    allowed: bool
    reason: DenialReason | None = None

    @classmethod
    def allow(cls) -> "GateDecision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: DenialReason) -> "GateDecision":
        return cls(allowed=False, reason=reason)


def evaluate_plan(plan: UserPlan | None, capability: Capability) -> GateDecision:
    """Decide whether ``plan`` grants ``capability``."""
    if plan is None:
        return GateDecision.deny(DenialReason.PLAN_NOT_FOUND)
    if plan.is_premium:
        return GateDecision.allow()
    required = REQUIRED_TIER.get(capability, PlanTier.PREMIUM)
    if required == PlanTier.PREMIUM:
        return GateDecision.deny(DenialReason.UPGRADE_REQUIRED)
    if plan.used_quota >= plan.free_quota:
        return GateDecision.deny(DenialReason.QUOTA_EXCEEDED)
    return GateDecision.allow()


class PlanGate:
    """Plan check in front of paid capabilities.

    Example:
        gate = PlanGate(PlanRepository(pool))
        await gate.require(user_id, Capability.GROUNDED_CHAT)
    """

    def __init__(self, plans: PlanRepository) -> None:
        self.plans = plans

    async def authorize(self, user_id: str, capability: Capability) -> GateDecision:
        plan = await self.plans.get_plan(user_id)
        decision = evaluate_plan(plan, capability)
        if not decision.allowed:
            logger.info(
                f"Denied {capability.value} for user {user_id}: {decision.reason.value}"
            )
        return decision

    async def require(self, user_id: str, capability: Capability) -> None:
        """Raise ``AuthorizationDenied`` unless the capability is allowed."""
        decision = await self.authorize(user_id, capability)
        if not decision.allowed:
            raise AuthorizationDenied(decision.reason, DENIAL_MESSAGES[decision.reason])
