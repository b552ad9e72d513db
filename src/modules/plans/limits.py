"""Plan tier configuration and domain/key ceilings.

Everything here is a pure function of the plan tier and the caller-supplied
usage count. Limits must be evaluated fresh inside every mutating operation:
concurrent purchases and cancellations change the count.
"""

from __future__ import annotations

from dataclasses import dataclass

from src.database.models import PlanTier


@dataclass(frozen=True)
class PlanConfig:
    """Static limits of a subscription tier."""

    name: str
    domains_allowed: int
    max_extra_domains: int
    price_per_extra_domain_cents: int | None
    allows_subdomains: bool

    @property
    def allows_extra_domains(self) -> bool:
        return self.max_extra_domains > 0 and bool(self.price_per_extra_domain_cents)

    @property
    def max_domains(self) -> int:
        return self.domains_allowed + self.max_extra_domains


PLAN_CONFIGS: dict[PlanTier, PlanConfig] = {
    PlanTier.STARTER: PlanConfig(
        name="Starter",
        domains_allowed=1,
        max_extra_domains=0,
        price_per_extra_domain_cents=None,
        allows_subdomains=False,
    ),
    PlanTier.BUSINESS: PlanConfig(
        name="Business",
        domains_allowed=1,
        max_extra_domains=2,
        price_per_extra_domain_cents=1000,  # 10€ / month
        allows_subdomains=True,
    ),
    PlanTier.ENTERPRISE: PlanConfig(
        name="Enterprise",
        domains_allowed=1,
        max_extra_domains=9,
        price_per_extra_domain_cents=1500,  # 15€ / month
        allows_subdomains=True,
    ),
}


@dataclass(frozen=True)
class PlanLimits:
    """Domain and key ceilings of an account at one instant."""

    plan_tier: PlanTier
    domains_allowed: int
    domains_extra: int
    domains_used: int
    max_extra_domains: int
    max_domains: int
    can_add_domain: bool
    allows_subdomains: bool
    price_per_extra_domain_cents: int | None

    @property
    def keys_allowed(self) -> int:
        # One active key per active domain
        return self.domains_used


def coerce_plan_tier(plan_tier: PlanTier | str) -> PlanTier:
    """Unknown or legacy tier values are treated as starter."""
    try:
        return PlanTier(plan_tier)
    except ValueError:
        return PlanTier.STARTER


def get_plan_config(plan_tier: PlanTier | str) -> PlanConfig:
    return PLAN_CONFIGS[coerce_plan_tier(plan_tier)]


def evaluate_plan_limits(
    plan_tier: PlanTier | str, active_extra_domains: int
) -> PlanLimits:
    """Compute the limits of an account from its tier and active extra domains.

    Args:
        plan_tier: The account's subscription tier
        active_extra_domains: Number of currently active extra domains

    Returns:
        PlanLimits with ``can_add_domain`` derived from the fresh count
    """
    config = get_plan_config(plan_tier)
    domains_used = config.domains_allowed + active_extra_domains
    can_add_domain = (
        config.allows_extra_domains and domains_used < config.max_domains
    )

    return PlanLimits(
        plan_tier=coerce_plan_tier(plan_tier),
        domains_allowed=config.domains_allowed,
        domains_extra=active_extra_domains,
        domains_used=domains_used,
        max_extra_domains=config.max_extra_domains,
        max_domains=config.max_domains,
        can_add_domain=can_add_domain,
        allows_subdomains=config.allows_subdomains,
        price_per_extra_domain_cents=config.price_per_extra_domain_cents,
    )
