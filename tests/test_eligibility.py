import pytest

from travel_engine.config import Settings
from travel_engine.errors import StoreUnavailable
from travel_engine.models.domain import (
    ClientFacts,
    CostBreakdown,
    LocationDescriptor,
    RuleClassification,
    TravelMode,
    TripDraft,
)
from travel_engine.persistence.store import InMemoryRecordStore
from travel_engine.services.eligibility.engine import EligibilityEngine
from travel_engine.services.eligibility.rules import RULE_MAP, build_rules


def _config(**overrides) -> Settings:
    values = {
        "obligatory_rules": ("min_days_since_last_proposal",),
        "min_days_since_last_proposal": 30,
        "min_cumulative_sales": 50000.0,
        "max_cost_to_revenue_pct": 5.0,
    }
    values.update(overrides)
    return Settings(**values)


def _engine(facts: ClientFacts, **overrides) -> EligibilityEngine:
    store = InMemoryRecordStore(facts={facts.client_id: facts})
    return EligibilityEngine(store, config=_config(**overrides))


def _draft_costing(total: float) -> TripDraft:
    draft = TripDraft(origin=LocationDescriptor(), destinations=[LocationDescriptor(city="Santos", region="SP")])
    draft.cost_breakdown = CostBreakdown(
        ground_transport_cost=total,
        toll_cost=0.0,
        air_fare_cost=0.0,
        airport_tax_cost=0.0,
        lodging_cost=0.0,
        meal_cost=0.0,
        parking_cost=0.0,
        total_distance_km=100.0,
        estimated_duration_hours=1.0,
        travel_mode=TravelMode.GROUND,
        per_person_multiplier=1,
    )
    return draft


def _verdict(report, rule_id):
    return next(v for v in report.verdicts if v.rule_id == rule_id)


def test_recent_proposal_and_low_sales_block_default_approval():
    facts = ClientFacts(client_id=1, last_proposal_days_ago=10, cumulative_sales_value=1000.0)

    report = _engine(facts).evaluate(1)

    assert report.may_proceed_without_override is False
    assert {v.rule_id for v in report.failed_rules} == {"min_days_since_last_proposal", "min_cumulative_sales"}
    assert [v.rule_id for v in report.failed_obligatory_rules] == ["min_days_since_last_proposal"]
    assert _verdict(report, "min_days_since_last_proposal").days_since_last_event == 10


def test_recommended_failures_never_block():
    facts = ClientFacts(client_id=1, last_proposal_days_ago=45, cumulative_sales_value=0.0, travel_cost_to_date=10.0)

    report = _engine(facts).evaluate(1)

    assert report.failed_rules
    assert all(v.classification is RuleClassification.RECOMMENDED for v in report.failed_rules)
    assert report.may_proceed_without_override is True


def test_making_a_rule_obligatory_changes_the_aggregate():
    facts = ClientFacts(client_id=1, last_proposal_days_ago=45, cumulative_sales_value=1000.0)

    assert _engine(facts).evaluate(1).may_proceed_without_override is True
    strict = _engine(facts, obligatory_rules=("min_days_since_last_proposal", "min_cumulative_sales"))
    assert strict.evaluate(1).may_proceed_without_override is False


def test_client_without_proposal_history_satisfies_interval_rule():
    report = _engine(ClientFacts(client_id=9)).evaluate(9)
    assert _verdict(report, "min_days_since_last_proposal").satisfied


def test_cost_to_revenue_includes_the_drafted_trip():
    facts = ClientFacts(client_id=1, last_proposal_days_ago=90, cumulative_sales_value=100000.0, travel_cost_to_date=4000.0)
    engine = _engine(facts)

    within = _verdict(engine.evaluate(1, _draft_costing(500.0)), "max_cost_to_revenue_ratio")
    beyond = _verdict(engine.evaluate(1, _draft_costing(1500.0)), "max_cost_to_revenue_ratio")

    assert within.satisfied and within.observed_value == 4.5
    assert not beyond.satisfied and beyond.observed_value == 5.5


def test_facts_are_fetched_on_every_call():
    store = InMemoryRecordStore(facts={1: ClientFacts(client_id=1, last_proposal_days_ago=5)})
    engine = EligibilityEngine(store, config=_config())
    assert engine.evaluate(1).may_proceed_without_override is False

    store.facts[1] = ClientFacts(client_id=1, last_proposal_days_ago=60)
    assert engine.evaluate(1).may_proceed_without_override is True


def test_store_failure_propagates():
    class DownStore(InMemoryRecordStore):
        def get_client_facts(self, client_id):
            raise StoreUnavailable("down")

    with pytest.raises(StoreUnavailable):
        EligibilityEngine(DownStore(), config=_config()).evaluate(1)


def test_rule_set_is_fixed_and_classified_by_config():
    rules = build_rules(_config())
    assert [rule.rule_id for rule in rules] == list(RULE_MAP)
    assert [rule.classification for rule in rules] == [
        RuleClassification.OBLIGATORY,
        RuleClassification.RECOMMENDED,
        RuleClassification.RECOMMENDED,
    ]


def test_unknown_obligatory_rule_is_rejected():
    with pytest.raises(ValueError):
        build_rules(_config(obligatory_rules=("no_such_rule",)))
