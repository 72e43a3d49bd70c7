"""
Capacity target resolution.

Targets are stored per service plus one reserved row holding the whole-team
target. The engine expects targets already resolved, so the helpers here sit
between the target store and the aggregator.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Tuple

from src.config import config
from src.data.models import to_decimal

ZERO = Decimal(0)


@dataclass(frozen=True)
class ResolvedTargets:
    """Per-service targets plus the effective team total."""

    per_service: Dict[str, Decimal] = field(default_factory=dict)
    team_total: Decimal = ZERO

    def as_mapping(self) -> Dict[str, Decimal]:
        """Targets keyed by service, with the team total under the reserved key."""
        mapping = dict(self.per_service)
        mapping[config.team_total_key] = self.team_total
        return mapping


def resolve_targets(rows: Iterable[Tuple[str, Any]]) -> ResolvedTargets:
    """
    Split (service, monthly_target) rows into per-service targets and a team total.

    If the team total row is missing or zero, it is derived as the sum of the
    per-service targets.
    """
    per_service: Dict[str, Decimal] = {}
    team_total = ZERO

    for service, monthly_target in rows:
        amount = to_decimal(monthly_target)
        if service == config.team_total_key:
            team_total = amount
        else:
            per_service[service] = amount

    if team_total == 0:
        team_total = sum(per_service.values(), ZERO)

    return ResolvedTargets(per_service=per_service, team_total=team_total)


def target_for(targets: Mapping[str, Any], key: Optional[str]) -> Decimal:
    """Target for one aggregation key; missing keys are 0."""
    if key is None:
        return ZERO
    return to_decimal(targets.get(key, 0))


def total_target(targets: Mapping[str, Any]) -> Decimal:
    """Sum of every known target, excluding the reserved team total key."""
    return sum(
        (to_decimal(v) for k, v in targets.items() if k != config.team_total_key),
        ZERO,
    )


def effective_member_target(role: Optional[str],
                            member_services: Sequence[str],
                            targets: Mapping[str, Any],
                            fallback: Any = 0,
                            primary_service: Optional[str] = None,
                            role_services: Optional[Mapping[str, str]] = None) -> Decimal:
    """
    Pick the single target a team member's billing is measured against.

    Resolution order:
    1. The service mapped from the member's role.
    2. A service the member works whose name matches the role.
    3. The only service the member works.
    4. The member's highest-billing (primary) service.

    With no targets configured at all, ``fallback`` is returned.
    """
    if not targets:
        return to_decimal(fallback)

    if role_services is None:
        role_services = config.role_services

    role_service = role_services.get(role) if role else None
    if role_service and to_decimal(targets.get(role_service, 0)) > 0:
        return to_decimal(targets[role_service])

    if role:
        role_lower = role.lower()
        for service in member_services:
            svc_lower = service.lower()
            if role_lower in svc_lower or svc_lower in role_lower:
                return target_for(targets, service)

    distinct = list(dict.fromkeys(member_services))
    if len(distinct) == 1:
        return target_for(targets, distinct[0])

    return target_for(targets, primary_service)
