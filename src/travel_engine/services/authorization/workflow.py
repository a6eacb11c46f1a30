"""Authorization workflow gating trip persistence.

A draft needs a human decision when its route requires air travel or when a
new draft fails an obligatory eligibility rule. Decisions are keyed by draft
and are the only state kept between calls.

States::

    Pending --confirm_air_travel / rules satisfied--> Confirmed
    Pending --override_eligibility(justification)---> Overridden
    any unpersisted state --cancel------------------> Cancelled

An air-travel confirmation is tagged with the distance it was given for. A
recomputation that moves the distance by more than the drift threshold drops
the confirmation and sends the decision back to Pending.
Its audit record always carries the Confirmed state, the outcome of that
action, even while an eligibility override is still outstanding.

Audit records are queued on the decision when a human acts and written only
after the trip is persisted, so an abandoned draft leaves nothing behind in
the store.
"""

from __future__ import annotations

import copy
import logging
import threading
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Callable, Optional

from ...config import settings
from ...errors import AuthorizationError, DecisionNotFound, PreconditionViolated
from ...models.domain import (
    AirConfirmation,
    AuditRecord,
    AuthorizationDecision,
    AuthorizationState,
    TravelMode,
    TripDraft,
)
from ...persistence.store import RecordStore
from ..costing.model import AIR_TRAVEL_THRESHOLD_KM
from ..eligibility.engine import EligibilityEngine
from ..routing.service import RouteComputation, RoutePlanner

logger = logging.getLogger(__name__)

AIR_CONFIRMATION = "air_travel_confirmation"
ELIGIBILITY_OVERRIDE = "eligibility_override"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuthorizationWorkflow:
    def __init__(
        self,
        planner: RoutePlanner,
        eligibility: EligibilityEngine,
        store: RecordStore,
        *,
        drift_threshold_km: float | None = None,
        retain_finished: int | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.planner = planner
        self.eligibility = eligibility
        self.store = store
        self.drift_threshold_km = (
            drift_threshold_km if drift_threshold_km is not None else settings.drift_threshold_km
        )
        self.retain_finished = (
            retain_finished if retain_finished is not None else settings.finished_decision_retention
        )
        self.clock = clock
        self._decisions: dict[str, AuthorizationDecision] = {}
        self._drafts: dict[str, tuple[TripDraft, RouteComputation]] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()
        self._finished: OrderedDict[str, None] = OrderedDict()

    def _lock_for(self, draft_key: str) -> threading.Lock:
        with self._registry_lock:
            return self._locks.setdefault(draft_key, threading.Lock())

    def _existing_lock(self, draft_key: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(draft_key)
        if lock is None:
            raise DecisionNotFound(draft_key)
        return lock

    def _retire(self, draft_key: str) -> None:
        """Release a finished draft and evict the oldest finished decisions past the retention bound."""
        self._drafts.pop(draft_key, None)
        with self._registry_lock:
            self._finished[draft_key] = None
            self._finished.move_to_end(draft_key)
            while len(self._finished) > self.retain_finished:
                evicted, _ = self._finished.popitem(last=False)
                self._decisions.pop(evicted, None)
                self._locks.pop(evicted, None)
                logger.debug(f"Evicted finished decision for draft '{evicted}'")

    def _get(self, draft_key: str) -> AuthorizationDecision:
        decision = self._decisions.get(draft_key)
        if decision is None:
            raise DecisionNotFound(draft_key)
        return decision

    def _has_drifted(self, confirmed_km: float, current_km: float) -> bool:
        return abs(confirmed_km - current_km) > self.drift_threshold_km

    @staticmethod
    def _ensure_open(decision: AuthorizationDecision) -> None:
        if decision.state is AuthorizationState.CANCELLED:
            raise AuthorizationError(f"Draft '{decision.draft_key}' was cancelled.")
        if decision.is_persisted:
            raise AuthorizationError(f"Draft '{decision.draft_key}' was already persisted as trip {decision.trip_id}.")

    def _settle(self, decision: AuthorizationDecision) -> None:
        previous = decision.state
        if decision.awaiting_air_confirmation or decision.awaiting_eligibility_override:
            decision.state = AuthorizationState.PENDING
        elif decision.justification:
            decision.state = AuthorizationState.OVERRIDDEN
        else:
            decision.state = AuthorizationState.CONFIRMED
        decision.updated_at = self.clock()
        if previous is not decision.state:
            logger.info(f"Draft '{decision.draft_key}': {previous.value} -> {decision.state.value}")

    def submit(
        self,
        draft_key: str,
        draft: TripDraft,
        *,
        client_id: Optional[int] = None,
        is_edit: bool = False,
        previous_distance_km: Optional[float] = None,
    ) -> AuthorizationDecision:
        """Recompute the draft's route, evaluate eligibility, then update its decision.

        Both computations finish before the decision is touched, so a failure
        in either leaves the decision exactly as it was.
        """
        computation = self.planner.compute_route(draft)
        if computation is None:
            raise PreconditionViolated("Draft has no destination with both city and region.")
        report = None
        if client_id is not None and not is_edit:
            report = self.eligibility.evaluate(client_id, draft)

        with self._lock_for(draft_key):
            decision = self._decisions.get(draft_key)
            if decision is None:
                decision = AuthorizationDecision(draft_key=draft_key, state=AuthorizationState.PENDING)
                self._decisions[draft_key] = decision
            self._ensure_open(decision)

            if (
                is_edit
                and previous_distance_km is not None
                and previous_distance_km > AIR_TRAVEL_THRESHOLD_KM
                and decision.air_confirmation is None
            ):
                decision.air_confirmation = AirConfirmation(at_distance_km=previous_distance_km)

            distance = computation.distance_km
            decision.distance_km = distance
            decision.travel_mode = computation.breakdown.travel_mode
            decision.client_id = client_id
            decision.is_edit = is_edit
            decision.eligibility = report

            confirmation = decision.air_confirmation
            if (
                decision.travel_mode is TravelMode.AIR
                and confirmation is not None
                and self._has_drifted(confirmation.at_distance_km, distance)
            ):
                logger.info(
                    f"Draft '{draft_key}': distance moved from {confirmation.at_distance_km:.1f} km "
                    f"to {distance:.1f} km, air travel must be confirmed again"
                )
                decision.air_confirmation = None
                decision.pending_audit = [r for r in decision.pending_audit if r.kind != AIR_CONFIRMATION]

            self._drafts[draft_key] = (draft, computation)
            self._settle(decision)
            return copy.deepcopy(decision)

    def confirm_air_travel(
        self,
        draft_key: str,
        *,
        actor: Optional[str] = None,
        expected_distance_km: Optional[float] = None,
    ) -> AuthorizationDecision:
        """Confirm air travel at the draft's current distance.

        ``expected_distance_km`` is the distance the operator was shown; the
        confirmation is refused when it has drifted from the current one.
        """
        with self._existing_lock(draft_key):
            decision = self._get(draft_key)
            self._ensure_open(decision)
            if decision.travel_mode is not TravelMode.AIR:
                raise AuthorizationError(f"Draft '{draft_key}' does not require air travel.")
            if expected_distance_km is not None and self._has_drifted(expected_distance_km, decision.distance_km):
                raise AuthorizationError(
                    f"Distance changed to {decision.distance_km:.1f} km since it was shown "
                    f"({expected_distance_km:.1f} km); review the route again."
                )
            if decision.air_confirmation is not None:
                return copy.deepcopy(decision)

            now = self.clock()
            decision.air_confirmation = AirConfirmation(
                at_distance_km=decision.distance_km, confirmed_by=actor, confirmed_at=now
            )
            self._settle(decision)
            decision.pending_audit.append(
                AuditRecord(
                    kind=AIR_CONFIRMATION,
                    draft_key=draft_key,
                    state=AuthorizationState.CONFIRMED,
                    actor=actor,
                    recorded_at=now,
                    distance_km=decision.distance_km,
                )
            )
            return copy.deepcopy(decision)

    def override_eligibility(
        self,
        draft_key: str,
        justification: str,
        *,
        actor: Optional[str] = None,
    ) -> AuthorizationDecision:
        justification = (justification or "").strip()
        if not justification:
            raise AuthorizationError("An override requires a non-empty justification.")

        with self._existing_lock(draft_key):
            decision = self._get(draft_key)
            self._ensure_open(decision)
            report = decision.eligibility
            if decision.is_edit or report is None or report.may_proceed_without_override:
                raise AuthorizationError(f"Draft '{draft_key}' has no unmet obligatory rule to override.")

            now = self.clock()
            decision.justification = justification
            self._settle(decision)
            decision.pending_audit.append(
                AuditRecord(
                    kind=ELIGIBILITY_OVERRIDE,
                    draft_key=draft_key,
                    state=decision.state,
                    actor=actor,
                    recorded_at=now,
                    justification=justification,
                    failed_rules=[v.name for v in report.failed_rules],
                    failed_obligatory_rules=[v.name for v in report.failed_obligatory_rules],
                    distance_km=decision.distance_km,
                )
            )
            logger.info(
                f"Draft '{draft_key}' eligibility overridden by {actor or 'unknown actor'}: "
                f"{len(report.failed_obligatory_rules)} obligatory rule(s) unmet"
            )
            return copy.deepcopy(decision)

    def cancel(self, draft_key: str) -> AuthorizationDecision:
        with self._existing_lock(draft_key):
            decision = self._get(draft_key)
            if decision.is_persisted:
                raise AuthorizationError(f"Draft '{draft_key}' was already persisted as trip {decision.trip_id}.")
            decision.state = AuthorizationState.CANCELLED
            decision.pending_audit.clear()
            decision.updated_at = self.clock()
            self._retire(draft_key)
            logger.info(f"Draft '{draft_key}' cancelled")
            return copy.deepcopy(decision)

    def persist(self, draft_key: str) -> str:
        """Persist the authorized draft and flush its queued audit records.

        Retrying after a store failure resumes where the previous attempt stopped.
        """
        with self._existing_lock(draft_key):
            decision = self._get(draft_key)
            if decision.state is AuthorizationState.CANCELLED:
                raise AuthorizationError(f"Draft '{draft_key}' was cancelled.")
            if decision.state is AuthorizationState.PENDING:
                raise AuthorizationError(f"Draft '{draft_key}' is still pending a decision.")

            if not decision.is_persisted:
                draft, computation = self._drafts[draft_key]
                decision.trip_id = self.store.persist_trip(draft, computation.breakdown, computation.route, decision)
                logger.info(f"Draft '{draft_key}' persisted as trip {decision.trip_id}")

            while decision.pending_audit:
                record = decision.pending_audit[0]
                record.trip_id = decision.trip_id
                self.store.append_audit_log(decision.trip_id, record)
                decision.pending_audit.pop(0)
                logger.info(f"Audit record '{record.kind}' written for trip {decision.trip_id}")
            self._retire(draft_key)
            return decision.trip_id

    def get_decision(self, draft_key: str) -> AuthorizationDecision:
        with self._existing_lock(draft_key):
            return copy.deepcopy(self._get(draft_key))
