"""Eligibility rules evaluated against a client's trip history."""

from __future__ import annotations

from abc import ABC, abstractmethod

from ...config import Settings
from ...models.domain import ClientFacts, EligibilityVerdict, RuleClassification, TripDraft


class EligibilityRule(ABC):
    rule_id: str
    name: str

    def __init__(self, classification: RuleClassification, config: Settings) -> None:
        self.classification = classification
        self.config = config

    @abstractmethod
    def check(self, facts: ClientFacts, draft: TripDraft | None) -> EligibilityVerdict:
        ...

    def _verdict(self, satisfied: bool, description: str, **kwargs) -> EligibilityVerdict:
        return EligibilityVerdict(
            rule_id=self.rule_id,
            name=self.name,
            description=description,
            classification=self.classification,
            satisfied=satisfied,
            **kwargs,
        )


class MinDaysSinceLastProposalRule(EligibilityRule):
    rule_id = "min_days_since_last_proposal"
    name = "Minimum interval since last proposal"

    def check(self, facts, draft) -> EligibilityVerdict:
        min_days = self.config.min_days_since_last_proposal
        days = facts.last_proposal_days_ago
        description = f"At least {min_days} days since the last proposal sent to the client"
        if days is None:
            return self._verdict(True, description, days_since_last_event=None)
        return self._verdict(days >= min_days, description, days_since_last_event=days)


class MinCumulativeSalesRule(EligibilityRule):
    rule_id = "min_cumulative_sales"
    name = "Minimum sales volume"

    def check(self, facts, draft) -> EligibilityVerdict:
        minimum = self.config.min_cumulative_sales
        return self._verdict(
            facts.cumulative_sales_value >= minimum,
            f"Client has accumulated at least {minimum:,.2f} in sales",
            observed_value=facts.cumulative_sales_value,
        )


class MaxCostToRevenueRule(EligibilityRule):
    rule_id = "max_cost_to_revenue_ratio"
    name = "Maximum travel cost to revenue ratio"

    def check(self, facts, draft) -> EligibilityVerdict:
        max_pct = self.config.max_cost_to_revenue_pct
        draft_cost = draft.cost_breakdown.total_cost if draft and draft.cost_breakdown else 0.0
        cost = facts.travel_cost_to_date + draft_cost
        description = f"Travel costs stay within {max_pct:g}% of the client's revenue"
        if facts.cumulative_sales_value <= 0:
            return self._verdict(cost <= 0, description, observed_value=None)
        ratio_pct = round(cost / facts.cumulative_sales_value * 100, 2)
        return self._verdict(ratio_pct <= max_pct, description, observed_value=ratio_pct)


RULE_MAP: dict[str, type[EligibilityRule]] = {
    MinDaysSinceLastProposalRule.rule_id: MinDaysSinceLastProposalRule,
    MinCumulativeSalesRule.rule_id: MinCumulativeSalesRule,
    MaxCostToRevenueRule.rule_id: MaxCostToRevenueRule,
}


def build_rules(config: Settings) -> list[EligibilityRule]:
    """Instantiate the fixed rule set, classified by configuration."""
    unknown = set(config.obligatory_rules) - set(RULE_MAP)
    if unknown:
        raise ValueError(f"Unknown obligatory rule(s): {', '.join(sorted(unknown))}")
    return [
        rule_cls(
            RuleClassification.OBLIGATORY if rule_id in config.obligatory_rules else RuleClassification.RECOMMENDED,
            config,
        )
        for rule_id, rule_cls in RULE_MAP.items()
    ]
