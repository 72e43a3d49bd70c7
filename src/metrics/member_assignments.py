"""
Member drill-down: what a single team member is carrying.

Lists the member's active line items and rolls them up by service, with
retainers and projects kept apart since only retainer billing counts toward
the member's capacity percentage.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from src.data.models import BillingType, ContractLineItem
from src.metrics.capacity import percentage_of

ZERO = Decimal(0)


@dataclass(frozen=True)
class Assignment:
    client_id: str
    client_name: str
    service: str
    amount: Decimal
    billing_type: BillingType


@dataclass(frozen=True)
class ServiceGroup:
    service: str
    amount: Decimal
    assignments: Tuple[Assignment, ...]


@dataclass(frozen=True)
class MemberBreakdown:
    member_id: str
    recurring: Tuple[ServiceGroup, ...]
    projects: Tuple[ServiceGroup, ...]
    recurring_total: Decimal
    project_total: Decimal

    @property
    def total(self) -> Decimal:
        return self.recurring_total + self.project_total

    @property
    def recurring_services(self) -> List[str]:
        return [g.service for g in self.recurring]

    @property
    def primary_service(self) -> Optional[str]:
        return self.recurring[0].service if self.recurring else None

    def percentage(self, target: Decimal) -> Decimal:
        """Recurring billing as a percentage of the member's target."""
        return percentage_of(self.recurring_total, target)


def _group_by_service(assignments: List[Assignment]) -> Tuple[ServiceGroup, ...]:
    by_service: Dict[str, List[Assignment]] = {}
    for a in assignments:
        by_service.setdefault(a.service, []).append(a)

    groups = [
        ServiceGroup(
            service=service,
            amount=sum((a.amount for a in rows), ZERO),
            assignments=tuple(rows),
        )
        for service, rows in by_service.items()
    ]
    groups.sort(key=lambda g: -g.amount)
    return tuple(groups)


def member_assignments(items: Iterable[ContractLineItem],
                       member_id: str,
                       client_names: Optional[Mapping[str, str]] = None) -> MemberBreakdown:
    """
    Break down the active items assigned to a member.

    Amounts are the items' face values (monthly rate for retainers, total
    value for projects), not month allocations.
    """
    names = client_names or {}
    recurring: List[Assignment] = []
    projects: List[Assignment] = []

    for item in items:
        if item.assignee_id != member_id or not item.is_active:
            continue
        assignment = Assignment(
            client_id=item.client_id,
            client_name=names.get(item.client_id, "Unknown"),
            service=item.service,
            amount=item.monthly_value,
            billing_type=item.billing_type,
        )
        if item.is_one_off:
            projects.append(assignment)
        else:
            recurring.append(assignment)

    return MemberBreakdown(
        member_id=member_id,
        recurring=_group_by_service(recurring),
        projects=_group_by_service(projects),
        recurring_total=sum((a.amount for a in recurring), ZERO),
        project_total=sum((a.amount for a in projects), ZERO),
    )
