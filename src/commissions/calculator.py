"""Distribution calculator: sale + configuration + rules -> commission rows.

Every role percentage is a direct fraction of the total sale value. The
phase percentages only act as guides: they are snapshotted on the sale
and define the utility pool, they never scale role amounts.

The calculator does not touch the database by itself. Its configuration
store and rule evaluator are injected, so a calculation can run against
fixture collaborators.
"""
from __future__ import annotations

import logging
from decimal import Decimal

from commissions.drafts import CalculationResult, DistributionDraft
from commissions.models import GlobalRoleConfig, Phase, RoleType
from commissions.money import ZERO, percent_of, quantize_money, quantize_percent, to_decimal

logger = logging.getLogger(__name__)

EXTERNAL_ADVISOR_OWNER = "asesor externo"

SALE_PHASE_GLOBAL_ROLES = (
    (RoleType.OPERATIONS_COORDINATOR, GlobalRoleConfig.Key.OPERATIONS_COORDINATOR),
    (RoleType.MARKETING, GlobalRoleConfig.Key.MARKETING),
)
POST_SALE_PHASE_GLOBAL_ROLES = (
    (RoleType.LEGAL_MANAGER, GlobalRoleConfig.Key.LEGAL_MANAGER),
    (RoleType.POST_SALE_COORDINATOR, GlobalRoleConfig.Key.POST_SALE_COORDINATOR),
)
OPTIONAL_POST_SALE_ROLES = (
    (RoleType.CUSTOMER_SERVICE, "customer_service"),
    (RoleType.DELIVERIES, "deliveries"),
    (RoleType.BONDS, "bonds"),
)


def redistribute_external_advisor(sale_manager: Decimal, deal_owner: Decimal, external_advisor: Decimal):
    """Hand the external-advisor share to sales manager and deal owner.

    The split is proportional to their own percentages, or equal when both
    are zero.
    """
    if not external_advisor:
        return sale_manager, deal_owner
    total = sale_manager + deal_owner
    if not total:
        half = quantize_percent(external_advisor / 2)
        return half, half
    return (
        quantize_percent(sale_manager + external_advisor * sale_manager / total),
        quantize_percent(deal_owner + external_advisor * deal_owner / total),
    )


def split_pool(pool_percent: Decimal, members: list[tuple[str, Decimal]]) -> dict[str, Decimal]:
    """Share ``pool_percent`` among members proportionally to their weights.

    Members with zero weight get nothing unless every weight is zero, in
    which case the pool is split equally.
    """
    if not members:
        return {}
    total = sum((weight for _, weight in members), ZERO)
    if not total:
        share = quantize_percent(pool_percent / len(members))
        return {role: share for role, _ in members}
    return {role: quantize_percent(pool_percent * weight / total) for role, weight in members}


class DistributionCalculator:
    """Compute the full row set for one sale."""

    def __init__(self, config_store, rule_evaluator, default_surcharge_percent=ZERO):
        self.config_store = config_store
        self.rule_evaluator = rule_evaluator
        self.default_surcharge_percent = to_decimal(default_surcharge_percent)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def compute(self, sale) -> CalculationResult:
        config = self.config_store.get_development_config(sale.development)
        if config is None:
            logger.info(
                "Sale %s: no configuration for development %r, only global roles apply",
                sale.pk, sale.development,
            )
        value = to_decimal(sale.total_value)

        sale_rows = self._sale_phase_rows(sale, config, value)
        post_sale_rows = self._post_sale_phase_rows(config, value)

        phase_sale_percent = quantize_percent(config.phase_sale_percent if config else ZERO)
        phase_post_sale_percent = quantize_percent(config.phase_post_sale_percent if config else ZERO)

        sale_total = quantize_money(sum((row.amount for row in sale_rows), ZERO))
        post_sale_total = quantize_money(sum((row.amount for row in post_sale_rows), ZERO))
        guide_total = percent_of(value, phase_sale_percent) + percent_of(value, phase_post_sale_percent)
        utility_pool = quantize_money(guide_total - sale_total - post_sale_total)

        utility_rows = self.rule_evaluator.evaluate(sale, utility_pool)

        result = CalculationResult(
            phase_sale_percent=phase_sale_percent,
            phase_post_sale_percent=phase_post_sale_percent,
            commission_sale_phase=sale_total,
            commission_post_sale_phase=post_sale_total,
            commission_total=quantize_money(sale_total + post_sale_total),
            utility_pool=utility_pool,
            rows=sale_rows + post_sale_rows + list(utility_rows),
        )
        logger.debug(
            "Sale %s computed: sale phase %s, post-sale phase %s, pool %s, %d rows",
            sale.pk, sale_total, post_sale_total, utility_pool, len(result.rows),
        )
        return result

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _row(self, phase, role_type, payee_name, percent, value, payee_external_id="") -> DistributionDraft:
        amount = percent_of(value, percent)
        return DistributionDraft(
            phase=phase,
            role_type=role_type,
            payee_name=payee_name or RoleType(role_type).label,
            payee_external_id=payee_external_id or "",
            percent_assigned=quantize_percent(percent),
            amount=amount,
            surcharge_percent=quantize_percent(self.default_surcharge_percent),
            surcharge_amount=percent_of(amount, self.default_surcharge_percent),
        )

    def _global_rows(self, phase, roles, value) -> list[DistributionDraft]:
        rows = []
        for role_type, key in roles:
            percent = to_decimal(self.config_store.get_global_percent(key))
            if percent > 0:
                rows.append(self._row(phase, role_type, self.config_store.get_global_payee(key), percent, value))
        return rows

    def _direct_sale_roles(self, sale, config) -> list[tuple[str, Decimal, str, str]]:
        """(role_type, percent, payee, payee id) of the directly paid sale roles."""
        sale_manager = to_decimal(config.sale_manager_percent)
        deal_owner = to_decimal(config.deal_owner_percent)
        external_advisor = to_decimal(config.external_advisor_percent)

        owner_is_external = (sale.deal_owner or "").strip().lower() == EXTERNAL_ADVISOR_OWNER
        has_external_advisor = bool((sale.external_advisor or "").strip())

        if owner_is_external and external_advisor > 0:
            deal_owner = ZERO
        elif not has_external_advisor and external_advisor > 0:
            sale_manager, deal_owner = redistribute_external_advisor(sale_manager, deal_owner, external_advisor)
            external_advisor = ZERO

        roles = [(RoleType.SALE_MANAGER, sale_manager, config.sale_manager_name, "")]
        if not owner_is_external:
            roles.append((RoleType.DEAL_OWNER, deal_owner, sale.deal_owner, sale.deal_owner_external_id))
        if (has_external_advisor or owner_is_external) and external_advisor > 0:
            if owner_is_external:
                roles.append(
                    (RoleType.EXTERNAL_ADVISOR, external_advisor, sale.deal_owner, sale.deal_owner_external_id)
                )
            else:
                roles.append(
                    (RoleType.EXTERNAL_ADVISOR, external_advisor, sale.external_advisor,
                     sale.external_advisor_external_id)
                )
        return roles

    def _sale_phase_rows(self, sale, config, value) -> list[DistributionDraft]:
        rows = []
        if config is not None:
            roles = self._direct_sale_roles(sale, config)
            if config.pool_enabled and config.sale_pool_total_percent is not None:
                shares = split_pool(
                    to_decimal(config.sale_pool_total_percent),
                    [(role_type, percent) for role_type, percent, _, _ in roles],
                )
                roles = [(role_type, shares[role_type], payee, payee_id) for role_type, _, payee, payee_id in roles]
            for role_type, percent, payee, payee_id in roles:
                if percent > 0:
                    rows.append(self._row(Phase.SALE, role_type, payee, percent, value, payee_id))
        rows.extend(self._global_rows(Phase.SALE, SALE_PHASE_GLOBAL_ROLES, value))
        return rows

    def _post_sale_phase_rows(self, config, value) -> list[DistributionDraft]:
        rows = self._global_rows(Phase.POST_SALE, POST_SALE_PHASE_GLOBAL_ROLES, value)
        if config is not None:
            for role_type, prefix in OPTIONAL_POST_SALE_ROLES:
                percent = to_decimal(getattr(config, f"{prefix}_percent"))
                if getattr(config, f"{prefix}_enabled") and percent > 0:
                    rows.append(
                        self._row(Phase.POST_SALE, role_type, getattr(config, f"{prefix}_name"), percent, value)
                    )
        return rows
