"""Volume-based bonus rule evaluation."""
from __future__ import annotations

import calendar
import logging
import re
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from django.utils import timezone

from commissions.drafts import DistributionDraft
from commissions.exceptions import ValidationError
from commissions.models import CommissionRule, Phase, RoleType, normalize_development
from commissions.money import HUNDRED, ZERO, percent_of, quantize_money, quantize_percent, to_decimal

logger = logging.getLogger(__name__)

_MONTHLY_RE = re.compile(r"^(\d{4})-(\d{2})$")
_QUARTER_RE = re.compile(r"^(\d{4})-Q([1-4])$")
_YEAR_RE = re.compile(r"^(\d{4})$")

REMAINING_UTILITY_LABEL = "Utilidad Restante"


@dataclass(frozen=True)
class Period:
    period_type: str
    key: str
    start: date
    end: date


def parse_period_value(period_type: str, value: str):
    """Validate a rule period and return ``(year, month_or_quarter_or_None)``.

    Monthly rules use ``YYYY-MM``; yearly rules ``YYYY``; quarterly rules
    either ``YYYY`` (every quarter of that year) or ``YYYY-Qn``.
    """
    value = (value or "").strip()
    PeriodType = CommissionRule.PeriodType
    if period_type == PeriodType.MONTHLY:
        match = _MONTHLY_RE.match(value)
        if match and 1 <= int(match.group(2)) <= 12:
            return int(match.group(1)), int(match.group(2))
        raise ValidationError(f"Periodo mensual invalido '{value}'; use AAAA-MM.")
    if period_type == PeriodType.QUARTERLY:
        match = _QUARTER_RE.match(value)
        if match:
            return int(match.group(1)), int(match.group(2))
        if _YEAR_RE.match(value):
            return int(value), None
        raise ValidationError(f"Periodo trimestral invalido '{value}'; use AAAA o AAAA-Qn.")
    if period_type == PeriodType.YEARLY:
        if _YEAR_RE.match(value):
            return int(value), None
        raise ValidationError(f"Periodo anual invalido '{value}'; use AAAA.")
    raise ValidationError(f"Tipo de periodo desconocido: {period_type}.")


def _month_bounds(year: int, first_month: int, last_month: int) -> tuple[date, date]:
    return date(year, first_month, 1), date(year, last_month, calendar.monthrange(year, last_month)[1])


def period_for_rule(rule, signing_date: date) -> Period | None:
    """Period of ``rule`` that contains ``signing_date``, or None if it does not apply."""
    try:
        year, sub = parse_period_value(rule.period_type, rule.period_value)
    except ValidationError:
        logger.warning("Rule %s has a malformed period %r; skipped", rule.pk, rule.period_value)
        return None
    if signing_date.year != year:
        return None

    PeriodType = CommissionRule.PeriodType
    if rule.period_type == PeriodType.MONTHLY:
        if signing_date.month != sub:
            return None
        start, end = _month_bounds(year, sub, sub)
        return Period(rule.period_type, f"{year}-{sub:02d}", start, end)
    if rule.period_type == PeriodType.QUARTERLY:
        quarter = (signing_date.month - 1) // 3 + 1
        if sub is not None and sub != quarter:
            return None
        start, end = _month_bounds(year, (quarter - 1) * 3 + 1, quarter * 3)
        return Period(rule.period_type, f"{year}-Q{quarter}", start, end)
    start, end = _month_bounds(year, 1, 12)
    return Period(rule.period_type, str(year), start, end)


def condition_met(operator: str, units: int, threshold: int) -> bool:
    if operator == CommissionRule.Operator.EQUAL:
        return units == threshold
    if operator == CommissionRule.Operator.AT_LEAST:
        return units >= threshold
    if operator == CommissionRule.Operator.AT_MOST:
        return units <= threshold
    return False


def active_rules_for(development_key: str) -> list[CommissionRule]:
    return list(
        CommissionRule.objects.filter(development=development_key, is_active=True).order_by("priority", "name", "id")
    )


def count_units_sold(development_key: str, period: Period, today: date) -> int:
    """Sales of the development signed inside ``period`` and not after ``today``."""
    from commissions.models import CommissionSale

    end = min(period.end, today)
    if end < period.start:
        return 0
    return CommissionSale.objects.filter(
        development_key=development_key,
        signing_date__gte=period.start,
        signing_date__lte=end,
    ).count()


class RuleEvaluator:
    """Evaluate every active rule of a sale's development.

    Each matching rule is evaluated on its own and yields one utility row,
    fulfilled or not. A final remaining-utility row carries the pool minus
    the fulfilled bonuses, negative values included. Unit counts are read
    once per period per call to :meth:`evaluate`.
    """

    def __init__(self, rules_provider=None, unit_counter=None, today: date | None = None):
        self.rules_provider = rules_provider or active_rules_for
        self.unit_counter = unit_counter or count_units_sold
        self.today = today

    def evaluate(self, sale, utility_pool: Decimal) -> list[DistributionDraft]:
        development_key = normalize_development(sale.development)
        sale_value = to_decimal(sale.total_value)
        today = self.today or timezone.localdate()
        units_by_period: dict[str, int] = {}

        rules = [rule for rule in self.rules_provider(development_key) if rule.is_active]
        rules.sort(key=lambda rule: (rule.priority, rule.name))

        rows: list[DistributionDraft] = []
        bonuses = ZERO
        for rule in rules:
            period = period_for_rule(rule, sale.signing_date)
            if period is None:
                continue
            if period.key not in units_by_period:
                units_by_period[period.key] = self.unit_counter(development_key, period, today)
            units = units_by_period[period.key]

            fulfilled = condition_met(rule.operator, units, rule.unit_threshold)
            amount = percent_of(sale_value, rule.commission_percent) if fulfilled else quantize_money(ZERO)
            surcharge = to_decimal(rule.surcharge_percent)
            rows.append(
                DistributionDraft(
                    phase=Phase.UTILITY,
                    role_type=RoleType.RULE_BONUS,
                    payee_name=rule.name,
                    percent_assigned=quantize_percent(rule.commission_percent),
                    amount=amount,
                    surcharge_percent=quantize_percent(surcharge),
                    surcharge_amount=percent_of(amount, surcharge),
                    rule_id=rule.pk,
                    rule_name=rule.name,
                    units_sold=units,
                    units_required=rule.unit_threshold,
                    operator=rule.operator,
                    fulfilled=fulfilled,
                )
            )
            bonuses += amount
            logger.debug(
                "Rule %s on sale %s: %s units %s %s -> %s",
                rule.name, sale.pk, units, rule.operator, rule.unit_threshold,
                "fulfilled" if fulfilled else "not fulfilled",
            )

        remaining = quantize_money(to_decimal(utility_pool) - bonuses)
        remaining_percent = quantize_percent(remaining / sale_value * HUNDRED) if sale_value else quantize_percent(ZERO)
        rows.append(
            DistributionDraft(
                phase=Phase.UTILITY,
                role_type=RoleType.REMAINING_UTILITY,
                payee_name=REMAINING_UTILITY_LABEL,
                percent_assigned=remaining_percent,
                amount=remaining,
            )
        )
        if remaining < 0:
            logger.warning("Sale %s: rule bonuses exceed the utility pool by %s", sale.pk, -remaining)
        return rows
