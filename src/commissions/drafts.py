"""In-memory rows produced by the engine before they are persisted."""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date
from decimal import Decimal

from commissions.money import ZERO


@dataclass
class DistributionDraft:
    phase: str
    role_type: str
    payee_name: str
    percent_assigned: Decimal
    amount: Decimal
    payee_external_id: str = ""
    surcharge_percent: Decimal = ZERO
    surcharge_amount: Decimal = ZERO
    rule_id: object = None
    rule_name: str = ""
    units_sold: int | None = None
    units_required: int | None = None
    operator: str = ""
    fulfilled: bool | None = None

    def as_model_kwargs(self) -> dict:
        return asdict(self)


@dataclass
class PartnerDraft:
    partner_name: str
    participation: Decimal
    sale_phase_amount: Decimal
    post_sale_phase_amount: Decimal
    total_amount: Decimal
    post_sale_reference_date: date | None
    is_cash_sale: bool = False

    def as_model_kwargs(self) -> dict:
        return asdict(self)


@dataclass
class CalculationResult:
    """Everything one calculation produces for a sale."""

    phase_sale_percent: Decimal
    phase_post_sale_percent: Decimal
    commission_sale_phase: Decimal
    commission_post_sale_phase: Decimal
    commission_total: Decimal
    utility_pool: Decimal
    rows: list[DistributionDraft] = field(default_factory=list)

    def rows_for(self, phase: str) -> list[DistributionDraft]:
        return [row for row in self.rows if row.phase == phase]
