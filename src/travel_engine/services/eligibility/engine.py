"""Eligibility engine: evaluates the configured rule set against fresh client facts."""

from __future__ import annotations

import logging

from ...config import Settings, settings
from ...models.domain import EligibilityReport, TripDraft
from ...persistence.store import RecordStore
from .rules import EligibilityRule, build_rules

logger = logging.getLogger(__name__)


class EligibilityEngine:
    """Facts are fetched on every call; verdicts are never reused across drafts."""

    def __init__(self, store: RecordStore, *, config: Settings | None = None, rules: list[EligibilityRule] | None = None) -> None:
        self.store = store
        self.rules = rules if rules is not None else build_rules(config or settings)

    def evaluate(self, client_id: int, draft: TripDraft | None = None) -> EligibilityReport:
        # StoreUnavailable propagates: a failed lookup must never read as a pass
        facts = self.store.get_client_facts(client_id)
        report = EligibilityReport(
            client_id=client_id,
            verdicts=[rule.check(facts, draft) for rule in self.rules],
        )
        if not report.may_proceed_without_override:
            logger.info(
                f"Client {client_id} fails obligatory rule(s): "
                f"{', '.join(v.rule_id for v in report.failed_obligatory_rules)}"
            )
        return report
